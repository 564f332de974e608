"""Input validation for linked storage accounts."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .ids import DataSourceTypeId, InvalidResourceIdError, WorkspaceId, validate_resource_group_name, validate_resource_id
from .models import DataSourceType

# Fields that cannot change once the linked storage account exists.
IMMUTABLE_FIELDS = ("data_source_type", "resource_group_name", "workspace_resource_id")


@dataclass(slots=True)
class SchemaValidationError(ValueError):
    """Raised when an input field is malformed; no remote call has been made."""

    field: str
    message: str

    def __str__(self) -> str:
        return f"invalid value for '{self.field}': {self.message}"


class LinkedStorageAccountSpec(BaseModel):
    """Validated desired state of a linked storage account."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    data_source_type: DataSourceType
    resource_group_name: str
    workspace_resource_id: str
    storage_account_ids: frozenset[str] = Field(min_length=1)

    @field_validator("data_source_type", mode="before")
    @classmethod
    def _parse_data_source_type(cls, value: Any) -> DataSourceType:
        if isinstance(value, DataSourceType):
            return value
        if not isinstance(value, str):
            raise ValueError("data source type must be a string")
        return DataSourceType.parse(value)

    @field_validator("resource_group_name")
    @classmethod
    def _validate_resource_group_name(cls, value: str) -> str:
        validate_resource_group_name(value)
        return value

    @field_validator("workspace_resource_id")
    @classmethod
    def _validate_workspace_resource_id(cls, value: str) -> str:
        try:
            WorkspaceId.parse(value)
        except InvalidResourceIdError as exc:
            raise ValueError(str(exc)) from exc
        return value

    @field_validator("storage_account_ids")
    @classmethod
    def _validate_storage_account_ids(cls, value: frozenset[str]) -> frozenset[str]:
        for storage_account_id in sorted(value):
            try:
                validate_resource_id(storage_account_id)
            except InvalidResourceIdError as exc:
                raise ValueError(str(exc)) from exc
        return value

    @property
    def workspace(self) -> WorkspaceId:
        return WorkspaceId.parse(self.workspace_resource_id)

    def resource_id(self) -> DataSourceTypeId:
        return DataSourceTypeId.for_workspace(self.workspace, self.resource_group_name, self.data_source_type)


def validate_input(raw: Mapping[str, Any]) -> LinkedStorageAccountSpec:
    """Validate raw field values, reporting the first offending field."""
    try:
        return LinkedStorageAccountSpec.model_validate(dict(raw))
    except ValidationError as exc:
        error = exc.errors()[0]
        location = ".".join(str(part) for part in error["loc"]) or "<input>"
        raise SchemaValidationError(field=location, message=error["msg"]) from exc
