"""
Data models for the registry sync service.

Ledger records are plain dataclasses handed over by the ledger client.
Metadata documents fetched from IPFS are pydantic models so malformed
JSON surfaces as a validation error instead of a half-filled record.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

NUL = "\u0000"


def derive_identity(raw: Union[bytes, bytearray, str]) -> str:
    """Convert a fixed-width on-chain identifier into its display identity.

    On-chain ids are right padded with NUL bytes; every NUL is dropped.
    """
    if isinstance(raw, (bytes, bytearray)):
        raw = bytes(raw).decode("utf-8", errors="replace")
    return raw.replace(NUL, "")


@dataclass
class OrganizationRecord:
    """Organization as stored in the registry contract."""
    id: bytes
    owner: str
    metadata_uri: bytes
    service_ids: List[bytes] = field(default_factory=list)

    @property
    def snet_id(self) -> str:
        return derive_identity(self.id)


@dataclass
class ServiceRecord:
    """Service as stored in the registry contract."""
    id: bytes
    metadata_uri: bytes

    @property
    def snet_id(self) -> str:
        return derive_identity(self.id)


class _Metadata(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        # JSON null means "absent"; the field default applies
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class Description(_Metadata):
    description: str = ""
    short_description: str = ""
    url: str = ""


class PaymentStorageClient(_Metadata):
    connection_timeout: str = ""
    request_timeout: str = ""
    endpoints: List[str] = Field(default_factory=list)


class GroupPayment(_Metadata):
    payment_address: str = ""
    payment_expiration_threshold: int = 0
    payment_channel_storage_type: str = ""
    payment_channel_storage_client: PaymentStorageClient = Field(default_factory=PaymentStorageClient)


class OrganizationGroup(_Metadata):
    """Payment group of an organization."""
    group_name: str = ""
    group_id: str = ""
    payment: GroupPayment = Field(default_factory=GroupPayment)

    def to_row(self, org_id: int) -> Dict[str, Any]:
        return {
            "org_id": org_id,
            "group_id": self.group_id,
            "group_name": self.group_name,
            "payment_address": self.payment.payment_address,
            "payment_expiration_threshold": self.payment.payment_expiration_threshold,
            "payment_channel_storage_type": self.payment.payment_channel_storage_type,
            "endpoints": json.dumps(self.payment.payment_channel_storage_client.endpoints),
        }


class OrganizationMetadata(_Metadata):
    """Organization metadata document plus fields derived during sync."""
    org_name: str = ""
    org_id: str = ""
    org_type: str = ""
    description: Description = Field(default_factory=Description)
    assets: Dict[str, Any] = Field(default_factory=dict)
    contacts: List[Dict[str, Any]] = Field(default_factory=list)
    groups: List[OrganizationGroup] = Field(default_factory=list)

    # Assigned by the syncer; excluded from dumps
    id: int = Field(default=0, exclude=True)
    owner: str = Field(default="", exclude=True)
    snet_id: str = Field(default="", exclude=True)

    def to_row(self) -> Dict[str, Any]:
        return {
            "snet_id": self.snet_id,
            "owner": self.owner,
            "name": self.org_name,
            "type": self.org_type,
            "description": self.description.description,
            "short_description": self.description.short_description,
            "url": self.description.url,
            "contacts": json.dumps(self.contacts),
            "assets": json.dumps(self.assets),
        }

    def group_rows(self, org_id: int) -> List[Dict[str, Any]]:
        return [group.to_row(org_id) for group in self.groups]


class ServiceGroup(_Metadata):
    group_name: str = ""
    group_id: str = ""
    free_calls: int = 0
    endpoints: List[str] = Field(default_factory=list)
    pricing: List[Dict[str, Any]] = Field(default_factory=list)


class ServiceMetadata(_Metadata):
    """Service metadata document plus fields derived during sync."""
    version: int = 0
    display_name: str = ""
    encoding: str = ""
    service_type: str = ""
    model_ipfs_hash: str = ""
    service_api_source: str = ""
    mpe_address: str = ""
    service_description: Description = Field(default_factory=Description)
    groups: List[ServiceGroup] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    contributors: List[Dict[str, Any]] = Field(default_factory=list)
    media: List[Dict[str, Any]] = Field(default_factory=list)

    id: int = Field(default=0, exclude=True)
    org_id: int = Field(default=0, exclude=True)
    snet_org_id: str = Field(default="", exclude=True)
    snet_id: str = Field(default="", exclude=True)

    @property
    def bundle_locator(self) -> Optional[str]:
        """Where the schema bundle lives; newer documents use ``service_api_source``."""
        return self.model_ipfs_hash or self.service_api_source or None

    def to_row(self) -> Dict[str, Any]:
        return {
            "org_id": self.org_id,
            "snet_org_id": self.snet_org_id,
            "snet_id": self.snet_id,
            "display_name": self.display_name,
            "version": self.version,
            "encoding": self.encoding,
            "service_type": self.service_type,
            "model_ipfs_hash": self.bundle_locator or "",
            "mpe_address": self.mpe_address,
            "url": self.service_description.url,
            "description": self.service_description.description,
            "short_description": self.service_description.short_description,
            "tags": json.dumps(self.tags),
            "groups": json.dumps([group.model_dump() for group in self.groups]),
        }
