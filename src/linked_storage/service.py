"""Service orchestration for linked storage accounts tracked in local state."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from .auth import ClientCredentialProvider
from .client import LinkedStorageAccountsClient
from .config import AutomationConfig
from .models import DataSourceType, ResourceData, ResourceRecord
from .resource import LinkedStorageAccountResource
from .schema import LinkedStorageAccountSpec, validate_input
from .state import StateStore

logger = logging.getLogger(__name__)


class PlannedAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    REPLACE = "replace"
    NOOP = "noop"


@dataclass(slots=True)
class ApplyResult:
    name: str
    action: PlannedAction
    record: Optional[ResourceRecord]


def _same_data_source_type(current: str, desired: DataSourceType) -> bool:
    try:
        return DataSourceType.parse(current) is desired
    except ValueError:
        return False


def plan_action(current: Optional[ResourceData], spec: LinkedStorageAccountSpec) -> PlannedAction:
    """Decide how to move ``current`` towards ``spec`` without calling the API."""
    if current is None or not current.is_tracked():
        return PlannedAction.CREATE
    if (
        not _same_data_source_type(current.data_source_type, spec.data_source_type)
        or current.resource_group_name != spec.resource_group_name
        or current.workspace_resource_id != spec.workspace_resource_id
    ):
        return PlannedAction.REPLACE
    if current.storage_account_ids != set(spec.storage_account_ids):
        return PlannedAction.UPDATE
    return PlannedAction.NOOP


class LinkedStorageAccountService:
    """Coordinates lifecycle hooks with the local state store."""

    def __init__(
        self,
        config: AutomationConfig,
        *,
        resource: Optional[LinkedStorageAccountResource] = None,
        state: Optional[StateStore] = None,
    ) -> None:
        self._config = config
        self._state = state or StateStore(config.state.path)
        if resource is None:
            credentials = ClientCredentialProvider(
                tenant_id=config.azure.tenant_id,
                client_id=config.azure.client_id,
                client_secret=config.azure.client_secret,
                authority_host=config.azure.authority_host,
            )
            client = LinkedStorageAccountsClient(
                credentials,
                management_url=config.azure.management_url,
                api_version=config.azure.api_version,
            )
            resource = LinkedStorageAccountResource(client, config.timeouts)
        self._resource = resource

    def plan(self, name: str, raw: Mapping[str, Any]) -> PlannedAction:
        spec = validate_input(raw)
        record = self._state.get(name)
        return plan_action(record.data if record else None, spec)

    def apply(self, name: str, raw: Mapping[str, Any]) -> ApplyResult:
        spec = validate_input(raw)
        record = self.refresh(name)
        action = plan_action(record.data if record else None, spec)
        logger.info("Applying '%s' to linked storage account '%s'", action.value, name)

        if record is None:
            return ApplyResult(name=name, action=action, record=self._create(name, spec))

        if action is PlannedAction.NOOP:
            return ApplyResult(name=name, action=action, record=record)

        if action is PlannedAction.UPDATE:
            record.data.storage_account_ids = set(spec.storage_account_ids)
            data = self._resource.update(record.data)
            return ApplyResult(name=name, action=action, record=self._persist(name, data))

        if action is PlannedAction.REPLACE:
            logger.info("Replacing linked storage account '%s' (%s)", name, record.data.id)
            self._resource.delete(record.data)
            self._state.delete(name)

        return ApplyResult(name=name, action=action, record=self._create(name, spec))

    def refresh(self, name: str) -> Optional[ResourceRecord]:
        """Reconcile the stored record with the remote resource."""
        record = self._state.get(name)
        if record is None:
            return None
        self._resource.read(record.data)
        if not record.data.is_tracked():
            logger.info("Linked storage account '%s' no longer exists; removing it from state", name)
            self._state.delete(name)
            return None
        record.touch()
        self._state.save(record)
        return record

    def show(self, name: str) -> Optional[ResourceRecord]:
        return self._state.get(name)

    def destroy(self, name: str) -> bool:
        record = self._state.get(name)
        if record is None:
            logger.info("Linked storage account '%s' not found in state; nothing to destroy", name)
            return False
        if record.data.is_tracked():
            self._resource.delete(record.data)
        return self._state.delete(name)

    def import_resource(self, name: str, identifier: str) -> ResourceRecord:
        if self._state.exists(name):
            raise ValueError(f"'{name}' is already managed; destroy or rename it before importing")
        data = self._resource.import_state(identifier)
        logger.info("Imported linked storage account '%s' as '%s'", data.id, name)
        record = ResourceRecord(name=name, data=data)
        self._state.save(record)
        return record

    def list_records(self) -> list[ResourceRecord]:
        """Return every tracked record as stored, without contacting Azure."""
        return self._state.list_records()

    def _create(self, name: str, spec: LinkedStorageAccountSpec) -> Optional[ResourceRecord]:
        data = ResourceData(
            data_source_type=spec.data_source_type.value,
            resource_group_name=spec.resource_group_name,
            workspace_resource_id=spec.workspace_resource_id,
            storage_account_ids=set(spec.storage_account_ids),
        )
        return self._persist(name, self._resource.create(data))

    def _persist(self, name: str, data: ResourceData) -> Optional[ResourceRecord]:
        if not data.is_tracked():
            logger.warning("Linked storage account '%s' disappeared right after being written", name)
            self._state.delete(name)
            return None
        record = ResourceRecord(name=name, data=data)
        self._state.save(record)
        return record
