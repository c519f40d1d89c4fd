"""Metadata decoding for organization and service documents."""

from typing import Type, TypeVar

from pydantic import BaseModel, ValidationError

from shared.utils.errors import MetadataDecodeError

from .models import OrganizationMetadata, ServiceMetadata

M = TypeVar("M", bound=BaseModel)


def _decode(raw: bytes, model: Type[M], kind: str) -> M:
    try:
        return model.model_validate_json(raw)
    except ValidationError as e:
        content = raw.decode("utf-8", errors="replace") if isinstance(raw, (bytes, bytearray)) else str(raw)
        raise MetadataDecodeError(
            f"Can't decode {kind} metadata: {e.error_count()} error(s)",
            kind=kind,
            content=content,
            details={"errors": [err["msg"] for err in e.errors()]},
        ) from e


def decode_organization_metadata(raw: bytes) -> OrganizationMetadata:
    """Parse an organization metadata JSON blob."""
    return _decode(raw, OrganizationMetadata, "organization")


def decode_service_metadata(raw: bytes) -> ServiceMetadata:
    """Parse a service metadata JSON blob."""
    return _decode(raw, ServiceMetadata, "service")
