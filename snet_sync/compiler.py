"""
Protobuf schema compilation.

Wraps ``grpc_tools.protoc`` to turn schema sources from a service bundle
into ``google.protobuf`` file descriptors. Imports resolve only against
the sources handed in (plus, optionally, the bundled well-known types).
"""

from __future__ import annotations

import posixpath
import tempfile
from importlib import resources
from pathlib import Path
from typing import List, Mapping, Optional, Union

import structlog
from google.protobuf import descriptor_pb2, descriptor_pool
from google.protobuf.descriptor import FileDescriptor
from grpc_tools import protoc

from shared.utils.errors import SchemaCompileError


logger = structlog.get_logger(__name__)

Source = Union[str, bytes]


class SchemaCompiler:
    """Compiles one schema file at a time into an isolated descriptor pool."""

    def __init__(self, include_well_known_types: bool = False):
        self.include_well_known_types = include_well_known_types

    def compile(self, file_name: str, sources: Mapping[str, Source]) -> Optional[FileDescriptor]:
        """Compile ``file_name`` from ``sources``; return ``None`` on any diagnostic."""
        try:
            return self.compile_or_raise(file_name, sources)
        except SchemaCompileError as e:
            logger.error("Failed to create file descriptor", file=file_name, error=e.message, **e.details)
            return None

    def compile_or_raise(self, file_name: str, sources: Mapping[str, Source]) -> FileDescriptor:
        if file_name not in sources:
            raise SchemaCompileError("Root file is not among the sources", file_name=file_name)

        with tempfile.TemporaryDirectory(prefix="snet-proto-") as workdir:
            root = Path(workdir) / "src"
            root.mkdir()
            for name, content in sources.items():
                target = _safe_path(root, name)
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(content.encode("utf-8") if isinstance(content, str) else content)

            descriptor_set = Path(workdir) / "descriptor_set.pb"
            exit_code = protoc.main(self._protoc_args(root, descriptor_set, file_name))
            if exit_code != 0 or not descriptor_set.exists():
                raise SchemaCompileError(
                    "protoc reported errors",
                    file_name=file_name,
                    details={"exit_code": exit_code},
                )
            payload = descriptor_set.read_bytes()

        return _load_descriptor(payload, file_name)

    def _protoc_args(self, root: Path, descriptor_set: Path, file_name: str) -> List[str]:
        args = [
            "grpc_tools.protoc",
            f"--proto_path={root}",
            "--include_imports",
            f"--descriptor_set_out={descriptor_set}",
        ]
        if self.include_well_known_types:
            args.append(f"--proto_path={resources.files('grpc_tools') / '_proto'}")
        args.append(file_name)
        return args


def _safe_path(root: Path, name: str) -> Path:
    normalized = posixpath.normpath(name)
    if normalized.startswith(("/", "..")) or normalized == ".":
        raise SchemaCompileError("Source name escapes the bundle", file_name=name)
    return root / normalized


def _load_descriptor(payload: bytes, file_name: str) -> FileDescriptor:
    try:
        file_set = descriptor_pb2.FileDescriptorSet.FromString(payload)
        pool = descriptor_pool.DescriptorPool()
        # --include_imports emits dependencies before their dependents
        for file_proto in file_set.file:
            pool.AddSerializedFile(file_proto.SerializeToString())
        return pool.FindFileByName(posixpath.normpath(file_name))
    except Exception as e:
        raise SchemaCompileError(f"Unloadable descriptor set: {e}", file_name=file_name) from e
