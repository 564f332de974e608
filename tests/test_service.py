from __future__ import annotations

from typing import Any, Dict, List

import pytest

from linked_storage.config import AutomationConfig
from linked_storage.models import ResourceData
from linked_storage.resource import ResourceAlreadyExistsError
from linked_storage.schema import SchemaValidationError, validate_input
from linked_storage.service import LinkedStorageAccountService, PlannedAction, plan_action
from linked_storage.state import StateStore

WORKSPACE_ID = "/subscriptions/S/resourceGroups/G/providers/Microsoft.OperationalInsights/workspaces/W"
LINKED_ID = WORKSPACE_ID + "/linkedStorageAccounts/CustomLogs"
STORAGE_A = "/subscriptions/S/resourceGroups/G/providers/Microsoft.Storage/storageAccounts/A"
STORAGE_B = "/subscriptions/S/resourceGroups/G/providers/Microsoft.Storage/storageAccounts/B"


class FakeResource:
    """Records hook invocations and simulates the remote resource."""

    def __init__(self) -> None:
        self.remote: Dict[str, ResourceData] = {}
        self.calls: List[str] = []

    def _id_for(self, data: ResourceData) -> str:
        return validate_input(data.to_input()).resource_id().id()

    def create(self, data: ResourceData) -> ResourceData:
        self.calls.append("create")
        resource_id = self._id_for(data)
        if resource_id in self.remote:
            raise ResourceAlreadyExistsError("log_analytics_linked_storage_account", resource_id)
        data.id = resource_id
        self.remote[resource_id] = ResourceData(**_fields(data))
        return self.read(data, record=False)

    def update(self, data: ResourceData) -> ResourceData:
        self.calls.append("update")
        self.remote[data.id].storage_account_ids = set(data.storage_account_ids)
        return self.read(data, record=False)

    def read(self, data: ResourceData, record: bool = True) -> ResourceData:
        if record:
            self.calls.append("read")
        remote = self.remote.get(data.id)
        if remote is None:
            data.id = ""
            return data
        data.storage_account_ids = set(remote.storage_account_ids)
        data.data_source_type = remote.data_source_type
        return data

    def delete(self, data: ResourceData) -> ResourceData:
        self.calls.append("delete")
        self.remote.pop(data.id, None)
        return data

    def import_state(self, identifier: str) -> ResourceData:
        self.calls.append("import")
        data = ResourceData(id=identifier)
        self.read(data, record=False)
        return data


def _fields(data: ResourceData) -> Dict[str, Any]:
    return {
        "id": data.id,
        "data_source_type": "CustomLogs",
        "resource_group_name": data.resource_group_name,
        "workspace_resource_id": data.workspace_resource_id,
        "storage_account_ids": set(data.storage_account_ids),
    }


def _raw(**overrides) -> dict:
    payload = {
        "data_source_type": "customlogs",
        "resource_group_name": "G",
        "workspace_resource_id": WORKSPACE_ID,
        "storage_account_ids": [STORAGE_A],
    }
    payload.update(overrides)
    return payload


def _service(tmp_path) -> tuple[LinkedStorageAccountService, FakeResource, StateStore]:
    config = AutomationConfig.from_dict(
        {
            "azure": {"tenant_id": "tenant", "client_id": "client", "client_secret": "secret"},
            "state": {"path": str(tmp_path)},
        }
    )
    resource = FakeResource()
    state = StateStore(tmp_path)
    service = LinkedStorageAccountService(config, resource=resource, state=state)  # type: ignore[arg-type]
    return service, resource, state


def test_plan_action_decisions() -> None:
    spec = validate_input(_raw())
    tracked = ResourceData(
        id=LINKED_ID,
        data_source_type="CustomLogs",
        resource_group_name="G",
        workspace_resource_id=WORKSPACE_ID,
        storage_account_ids={STORAGE_A},
    )

    assert plan_action(None, spec) is PlannedAction.CREATE
    assert plan_action(ResourceData(), spec) is PlannedAction.CREATE
    assert plan_action(tracked, spec) is PlannedAction.NOOP
    assert plan_action(tracked, validate_input(_raw(storage_account_ids=[STORAGE_B]))) is PlannedAction.UPDATE
    assert plan_action(tracked, validate_input(_raw(data_source_type="query"))) is PlannedAction.REPLACE
    assert plan_action(tracked, validate_input(_raw(resource_group_name="other"))) is PlannedAction.REPLACE


def test_apply_creates_and_persists_record(tmp_path) -> None:
    service, resource, state = _service(tmp_path)

    result = service.apply("logs", _raw())

    assert result.action is PlannedAction.CREATE
    assert result.record is not None
    assert result.record.data.id == LINKED_ID
    stored = state.get("logs")
    assert stored is not None
    assert stored.data.storage_account_ids == {STORAGE_A}
    assert resource.calls == ["create"]


def test_apply_is_idempotent(tmp_path) -> None:
    service, resource, _ = _service(tmp_path)
    service.apply("logs", _raw())
    resource.calls.clear()

    result = service.apply("logs", _raw())

    assert result.action is PlannedAction.NOOP
    assert resource.calls == ["read"]


def test_apply_updates_storage_accounts_in_place(tmp_path) -> None:
    service, resource, state = _service(tmp_path)
    service.apply("logs", _raw())
    resource.calls.clear()

    result = service.apply("logs", _raw(storage_account_ids=[STORAGE_A, STORAGE_B]))

    assert result.action is PlannedAction.UPDATE
    assert resource.calls == ["read", "update"]
    stored = state.get("logs")
    assert stored is not None
    assert stored.data.storage_account_ids == {STORAGE_A, STORAGE_B}


def test_apply_replaces_when_immutable_field_changes(tmp_path) -> None:
    service, resource, _ = _service(tmp_path)
    service.apply("logs", _raw())
    resource.calls.clear()

    result = service.apply("logs", _raw(resource_group_name="H"))

    assert result.action is PlannedAction.REPLACE
    assert resource.calls == ["read", "delete", "create"]
    assert result.record is not None
    assert "/resourceGroups/H/" in result.record.data.id
    assert LINKED_ID not in resource.remote


def test_apply_recreates_resource_deleted_out_of_band(tmp_path) -> None:
    service, resource, _ = _service(tmp_path)
    service.apply("logs", _raw())
    resource.remote.clear()
    resource.calls.clear()

    result = service.apply("logs", _raw())

    assert result.action is PlannedAction.CREATE
    assert resource.calls == ["read", "create"]


def test_apply_surfaces_conflicts_without_saving(tmp_path) -> None:
    service, resource, state = _service(tmp_path)
    resource.remote[LINKED_ID] = ResourceData(id=LINKED_ID, data_source_type="CustomLogs")

    with pytest.raises(ResourceAlreadyExistsError):
        service.apply("logs", _raw())

    assert state.get("logs") is None


def test_apply_validates_before_touching_state(tmp_path) -> None:
    service, resource, _ = _service(tmp_path)

    with pytest.raises(SchemaValidationError):
        service.apply("logs", _raw(storage_account_ids=[]))

    assert resource.calls == []


def test_refresh_removes_vanished_records(tmp_path) -> None:
    service, resource, state = _service(tmp_path)
    service.apply("logs", _raw())
    resource.remote.clear()

    assert service.refresh("logs") is None
    assert state.get("logs") is None


def test_destroy_deletes_remote_and_state(tmp_path) -> None:
    service, resource, state = _service(tmp_path)
    service.apply("logs", _raw())
    resource.calls.clear()

    assert service.destroy("logs") is True
    assert resource.calls == ["delete"]
    assert resource.remote == {}
    assert state.get("logs") is None
    assert service.destroy("logs") is False


def test_import_resource_tracks_existing_resource(tmp_path) -> None:
    service, resource, state = _service(tmp_path)
    resource.remote[LINKED_ID] = ResourceData(
        id=LINKED_ID,
        data_source_type="CustomLogs",
        resource_group_name="G",
        workspace_resource_id=WORKSPACE_ID,
        storage_account_ids={STORAGE_A},
    )

    record = service.import_resource("logs", LINKED_ID)

    assert record.data.id == LINKED_ID
    assert state.exists("logs")
    with pytest.raises(ValueError):
        service.import_resource("logs", LINKED_ID)


def test_plan_does_not_call_resource(tmp_path) -> None:
    service, resource, _ = _service(tmp_path)

    assert service.plan("logs", _raw()) is PlannedAction.CREATE
    assert resource.calls == []


def test_list_records_reads_state_only(tmp_path) -> None:
    service, resource, _ = _service(tmp_path)
    service.apply("logs", _raw())
    service.apply("alerts", _raw(data_source_type="alerts"))
    resource.calls.clear()

    records = service.list_records()

    assert sorted(record.name for record in records) == ["alerts", "logs"]
    assert resource.calls == []
