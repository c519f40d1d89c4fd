"""
In-memory schema registry.

Holds the compiled descriptors of every synced service keyed by the
service identity, and renders them as a nested HTML summary of each
service's RPC methods and their request/response fields.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

import structlog
from google.protobuf import descriptor_pb2
from google.protobuf.descriptor import Descriptor, FieldDescriptor, FileDescriptor


logger = structlog.get_logger(__name__)


class ReadWriteLock:
    """Many concurrent readers or one writer; waiting writers block new readers."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


def kind_name(field: FieldDescriptor) -> str:
    """Lowercase protobuf kind of a field, e.g. ``string`` or ``message``."""
    return descriptor_pb2.FieldDescriptorProto.Type.Name(field.type)[len("TYPE_"):].lower()


def declared_name(file_descriptor: FileDescriptor) -> str:
    """Last segment of the file's package."""
    return (file_descriptor.package or "").rsplit(".", 1)[-1]


class SchemaRegistry:
    """Service identity -> compiled descriptors, in accumulation order.

    ``None`` entries stand for files that failed to compile; they are kept
    so the entry count matches the bundle, and skipped when reading.
    """

    def __init__(self):
        self._descriptors: Dict[str, List[Optional[FileDescriptor]]] = {}
        self._lock = ReadWriteLock()

    def accumulate(self, snet_id: str, descriptor: Optional[FileDescriptor]) -> None:
        with self._lock.write():
            self._descriptors.setdefault(snet_id, []).append(descriptor)

    def clear(self, snet_id: str) -> None:
        """Forget everything accumulated for one service."""
        with self._lock.write():
            dropped = self._descriptors.pop(snet_id, None)
        if dropped:
            logger.debug("Registry entries cleared", snet_id=snet_id, count=len(dropped))

    def lookup(self, snet_id: str) -> List[FileDescriptor]:
        with self._lock.read():
            return [d for d in self._descriptors.get(snet_id) or [] if d is not None]

    def identities(self) -> List[str]:
        with self._lock.read():
            return list(self._descriptors)

    def descriptor_count(self) -> int:
        with self._lock.read():
            return sum(1 for entries in self._descriptors.values() for d in entries if d is not None)

    def describe(self, snet_id: str) -> List[Dict[str, Any]]:
        """JSON-friendly view of one service's descriptors."""
        described = []
        for fd in self.lookup(snet_id):
            services = []
            for service in fd.services_by_name.values():
                services.append({
                    "name": service.name,
                    "methods": [
                        {
                            "name": method.name,
                            "input": _describe_fields(method.input_type),
                            "output": _describe_fields(method.output_type),
                        }
                        for method in service.methods or []
                        if method is not None
                    ],
                })
            described.append({"path": fd.name, "name": declared_name(fd), "services": services})
        return described

    def render(self) -> str:
        parts: List[str] = ['<div style="line-height: 0.8;"><ol>']
        with self._lock.read():
            for snet_id, descriptors in self._descriptors.items():
                for fd in descriptors or []:
                    if fd is not None:
                        _render_file(parts, snet_id, fd)
        parts.append("</ol></div>")
        return "".join(parts)


def _describe_fields(message: Optional[Descriptor]) -> Dict[str, Any]:
    if message is None:
        return {}
    described: Dict[str, Any] = {}
    for field in message.fields or []:
        if field.message_type is not None:
            described[field.json_name] = {f.json_name: kind_name(f) for f in field.message_type.fields or []}
        else:
            described[field.json_name] = kind_name(field)
    return described


def _render_file(parts: List[str], snet_id: str, fd: FileDescriptor) -> None:
    parts.append(
        f"<li><strong>Path: {fd.name} Snet ID: {snet_id} Descriptor: {declared_name(fd)}</strong></li>"
    )
    services = fd.services_by_name
    if services is None:
        return
    for service in services.values():
        if service is None:
            continue
        parts.append(f"<p><em>Service: {service.name}</em></p>")
        methods = service.methods
        if methods is None:
            continue
        parts.append("<p>🔁Methods: </p><ul>")
        for method in methods:
            if method is None:
                continue
            parts.append(f"<li>{method.name}<br>")
            _render_message(parts, "Input", method.input_type)
            _render_message(parts, "Output", method.output_type)
            parts.append("</li>")
        parts.append("</ul>")


def _render_message(parts: List[str], title: str, message: Optional[Descriptor]) -> None:
    if message is None or message.fields is None:
        return
    parts.append(f"<p>➡️{title}:</p>")
    parts.append("<pre><code>{")
    for field in message.fields:
        if field is None:
            continue
        nested = field.message_type
        if nested is None:
            parts.append(f'\n    "{field.json_name}": {kind_name(field)}')
            continue
        if nested.fields is None:
            continue
        parts.append(f'\n    "{field.json_name}": {{')
        for member in nested.fields:
            if member is not None:
                parts.append(f'\n        "{member.json_name}": {kind_name(member)}')
        parts.append("\n    }")
    parts.append("\n}</code></pre>")
