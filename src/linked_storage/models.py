"""Domain models for Log Analytics linked storage accounts."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional


class DataSourceType(str, Enum):
    """Telemetry category served by a linked storage account."""

    CUSTOM_LOGS = "CustomLogs"
    AZURE_WATSON = "AzureWatson"
    QUERY = "Query"
    ALERTS = "Alerts"
    # Removed from the API enum in 2020-08-01, still accepted by the service.
    INGESTION = "Ingestion"

    @classmethod
    def parse(cls, value: str) -> "DataSourceType":
        """Match ``value`` case-insensitively against the known types."""
        lowered = value.lower()
        for member in cls:
            if member.value.lower() == lowered:
                return member
        allowed = ", ".join(member.value.lower() for member in cls)
        raise ValueError(f"unsupported data source type '{value}', expected one of: {allowed}")


@dataclass(slots=True)
class LinkedStorageAccountsResource:
    """Management-plane representation of a linked storage account."""

    id: Optional[str] = None
    name: Optional[str] = None
    type: Optional[str] = None
    data_source_type: Optional[str] = None
    storage_account_ids: Optional[List[str]] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "LinkedStorageAccountsResource":
        properties = payload.get("properties") or {}
        storage_account_ids = properties.get("storageAccountIds")
        return cls(
            id=payload.get("id"),
            name=payload.get("name"),
            type=payload.get("type"),
            data_source_type=properties.get("dataSourceType"),
            storage_account_ids=list(storage_account_ids) if storage_account_ids is not None else None,
        )

    @classmethod
    def for_storage_accounts(cls, storage_account_ids: Iterable[str]) -> "LinkedStorageAccountsResource":
        return cls(storage_account_ids=sorted(storage_account_ids))

    def to_payload(self) -> Dict[str, Any]:
        properties: Dict[str, Any] = {}
        if self.storage_account_ids is not None:
            properties["storageAccountIds"] = list(self.storage_account_ids)
        return {"properties": properties}


@dataclass(slots=True)
class ResourceData:
    """Locally tracked fields of one managed linked storage account.

    An empty ``id`` means nothing is tracked remotely.
    """

    id: str = ""
    data_source_type: str = ""
    resource_group_name: str = ""
    workspace_resource_id: str = ""
    storage_account_ids: set[str] = field(default_factory=set)

    def to_input(self) -> Dict[str, Any]:
        return {
            "data_source_type": self.data_source_type,
            "resource_group_name": self.resource_group_name,
            "workspace_resource_id": self.workspace_resource_id,
            "storage_account_ids": sorted(self.storage_account_ids),
        }

    def is_tracked(self) -> bool:
        return bool(self.id)


@dataclass(slots=True)
class ResourceRecord:
    """State persisted per local address."""

    name: str
    data: ResourceData
    updated_at: datetime = field(default_factory=lambda: datetime.utcnow())

    def touch(self) -> None:
        self.updated_at = datetime.utcnow()
