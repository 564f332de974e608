"""State persistence for managed linked storage accounts."""
from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Optional

from .models import ResourceData, ResourceRecord


def _serialize_datetime(value: datetime) -> str:
    return value.replace(microsecond=0).isoformat() + "Z"


def _deserialize_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value.rstrip("Z"))


def _record_to_json(record: ResourceRecord) -> dict:
    data = record.data
    return {
        "name": record.name,
        "id": data.id,
        "attributes": {
            "data_source_type": data.data_source_type,
            "resource_group_name": data.resource_group_name,
            "workspace_resource_id": data.workspace_resource_id,
            "storage_account_ids": sorted(data.storage_account_ids),
        },
        "updated_at": _serialize_datetime(record.updated_at),
    }


def _json_to_record(payload: dict) -> ResourceRecord:
    attributes = payload.get("attributes", {})
    data = ResourceData(
        id=payload.get("id", ""),
        data_source_type=attributes.get("data_source_type", ""),
        resource_group_name=attributes.get("resource_group_name", ""),
        workspace_resource_id=attributes.get("workspace_resource_id", ""),
        storage_account_ids=set(attributes.get("storage_account_ids", [])),
    )
    return ResourceRecord(
        name=payload["name"],
        data=data,
        updated_at=_deserialize_datetime(payload["updated_at"]),
    )


class StateStore:
    """JSON file-backed store, one file per local address."""

    def __init__(self, root_path: str | Path):
        self._root = Path(root_path).expanduser().resolve()
        self._root.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()

    def _path_for(self, name: str) -> Path:
        safe_name = name.replace("/", "_")
        return self._root / f"{safe_name}.json"

    def get(self, name: str) -> Optional[ResourceRecord]:
        path = self._path_for(name)
        if not path.exists():
            return None
        return _json_to_record(json.loads(path.read_text()))

    def save(self, record: ResourceRecord) -> None:
        path = self._path_for(record.name)
        with self._lock:
            payload = _record_to_json(record)
            path.write_text(json.dumps(payload, indent=2, sort_keys=True))

    def delete(self, name: str) -> bool:
        path = self._path_for(name)
        with self._lock:
            if not path.exists():
                return False
            path.unlink()
            return True

    def exists(self, name: str) -> bool:
        return self._path_for(name).exists()

    def list_records(self) -> list[ResourceRecord]:
        records: list[ResourceRecord] = []
        for path in sorted(self._root.glob("*.json")):
            records.append(_json_to_record(json.loads(path.read_text())))
        return records
