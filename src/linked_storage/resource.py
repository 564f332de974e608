"""Lifecycle hooks for the Log Analytics linked storage account resource."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import requests

from .auth import AuthenticationError
from .client import LinkedStorageAccountsClient
from .config import TimeoutsConfig
from .http import ManagementApiError, UnexpectedResponseError
from .ids import DataSourceTypeId
from .models import LinkedStorageAccountsResource, ResourceData
from .schema import validate_input
from .timeouts import OperationTimeoutError, deadline_for

logger = logging.getLogger(__name__)

RESOURCE_TYPE = "log_analytics_linked_storage_account"

_REMOTE_ERRORS = (
    AuthenticationError,
    ManagementApiError,
    UnexpectedResponseError,
    OperationTimeoutError,
    requests.RequestException,
)


@dataclass(slots=True)
class RemoteOperationError(RuntimeError):
    """A management API call failed; the cause is chained."""

    operation: str
    resource_id: str

    def __str__(self) -> str:
        cause = self.__cause__
        return f"{self.operation} {self.resource_id}: {cause}" if cause else f"{self.operation} {self.resource_id}"


@dataclass(slots=True)
class ResourceAlreadyExistsError(RuntimeError):
    resource_type: str
    resource_id: str

    def __str__(self) -> str:
        return (
            f"A resource with the ID {self.resource_id!r} already exists - to be managed via this tool "
            f"this resource needs to be imported into the State. "
            f"Please see the '{self.resource_type}' import documentation for more information."
        )


@dataclass(slots=True)
class ResourceNotFoundError(RuntimeError):
    """Raised when importing an identifier that has no remote resource."""

    resource_id: str

    def __str__(self) -> str:
        return f"cannot import non-existent remote object {self.resource_id!r}"


class LinkedStorageAccountResource:
    """Create, read, update and delete hooks driven by the host service.

    Each hook works on a :class:`ResourceData` record in place and returns it.
    """

    def __init__(self, client: LinkedStorageAccountsClient, timeouts: Optional[TimeoutsConfig] = None) -> None:
        self._client = client
        self._timeouts = timeouts or TimeoutsConfig()

    def create(self, data: ResourceData) -> ResourceData:
        return self._create_or_update(data, is_new=True)

    def update(self, data: ResourceData) -> ResourceData:
        return self._create_or_update(data, is_new=False)

    def _create_or_update(self, data: ResourceData, is_new: bool) -> ResourceData:
        spec = validate_input(data.to_input())
        deadline = deadline_for(self._timeouts, "create" if is_new else "update")
        resource_id = spec.resource_id()

        if is_new:
            try:
                existing = self._client.get(resource_id, deadline)
            except _REMOTE_ERRORS as exc:
                raise RemoteOperationError("checking for presence of existing", str(resource_id)) from exc
            if existing is not None:
                raise ResourceAlreadyExistsError(RESOURCE_TYPE, resource_id.id())

        parameters = LinkedStorageAccountsResource.for_storage_accounts(spec.storage_account_ids)
        try:
            self._client.create_or_update(resource_id, parameters, deadline)
        except _REMOTE_ERRORS as exc:
            raise RemoteOperationError("creating/updating", str(resource_id)) from exc

        data.id = resource_id.id()
        return self.read(data)

    def read(self, data: ResourceData) -> ResourceData:
        resource_id = DataSourceTypeId.parse_insensitively(data.id)
        deadline = deadline_for(self._timeouts, "read")

        try:
            model = self._client.get(resource_id, deadline)
        except _REMOTE_ERRORS as exc:
            raise RemoteOperationError("retrieving", str(resource_id)) from exc

        if model is None:
            logger.info("Log Analytics Linked Storage Account %r does not exist - removing from state", data.id)
            data.id = ""
            return data

        data.resource_group_name = resource_id.resource_group_name
        data.workspace_resource_id = resource_id.workspace_id().id()
        data.storage_account_ids = set(model.storage_account_ids or [])
        data.data_source_type = model.data_source_type or ""
        return data

    def delete(self, data: ResourceData) -> ResourceData:
        resource_id = DataSourceTypeId.parse_insensitively(data.id)
        deadline = deadline_for(self._timeouts, "delete")

        try:
            self._client.delete(resource_id, deadline)
        except _REMOTE_ERRORS as exc:
            raise RemoteOperationError("deleting", str(resource_id)) from exc
        return data

    def import_state(self, identifier: str) -> ResourceData:
        """Adopt an existing remote resource by its identifier."""
        resource_id = validate_import_id(identifier)
        data = self.read(ResourceData(id=resource_id.id()))
        if not data.is_tracked():
            raise ResourceNotFoundError(resource_id.id())
        return data


def validate_import_id(identifier: str) -> DataSourceTypeId:
    """Validate an identifier supplied for import and return it parsed.

    Import accepts the legacy lower-cased segments that older state files
    carry, so the identifier is parsed insensitively. Raises
    ``InvalidResourceIdError`` when it does not name a linked storage account.
    """
    return DataSourceTypeId.parse_insensitively(identifier)
