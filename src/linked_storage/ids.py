"""Resource identifier parsing and formatting for linked storage accounts."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Sequence, Tuple

from .models import DataSourceType

OPERATIONAL_INSIGHTS_NAMESPACE = "Microsoft.OperationalInsights"

_RESOURCE_GROUP_PATTERN = re.compile(r"^[-\w._()]+$", re.ASCII)
_RESOURCE_GROUP_MAX_LENGTH = 90

# Segments wrapped in braces are user-supplied values captured under that key.
_WORKSPACE_SEGMENTS: Tuple[str, ...] = (
    "subscriptions",
    "{subscription_id}",
    "resourceGroups",
    "{resource_group_name}",
    "providers",
    OPERATIONAL_INSIGHTS_NAMESPACE,
    "workspaces",
    "{workspace_name}",
)

_DATA_SOURCE_TYPE_SEGMENTS: Tuple[str, ...] = _WORKSPACE_SEGMENTS + (
    "linkedStorageAccounts",
    "{data_source_type}",
)


@dataclass(slots=True)
class InvalidResourceIdError(ValueError):
    """Raised when a string cannot be parsed as the expected resource id."""

    value: str
    expected: str
    reason: str

    def __str__(self) -> str:
        return f"parsing {self.value!r} as a {self.expected} ID: {self.reason}"


def _split_segments(value: str, expected: str) -> list[str]:
    if not value.startswith("/"):
        raise InvalidResourceIdError(value, expected, "the ID must start with '/'")
    segments = value.strip("/").split("/")
    if any(not segment for segment in segments):
        raise InvalidResourceIdError(value, expected, "the ID contains an empty segment")
    return segments


def _parse_segments(value: str, template: Sequence[str], expected: str, insensitive: bool) -> Dict[str, str]:
    segments = _split_segments(value, expected)
    if len(segments) != len(template):
        raise InvalidResourceIdError(
            value,
            expected,
            f"expected {len(template)} segments but got {len(segments)}",
        )
    parsed: Dict[str, str] = {}
    for segment, part in zip(segments, template):
        if part.startswith("{"):
            parsed[part[1:-1]] = segment
            continue
        matches = segment.lower() == part.lower() if insensitive else segment == part
        if not matches:
            raise InvalidResourceIdError(value, expected, f"expected the segment {part!r} but got {segment!r}")
    return parsed


@dataclass(frozen=True, slots=True)
class WorkspaceId:
    subscription_id: str
    resource_group_name: str
    workspace_name: str

    @classmethod
    def parse(cls, value: str) -> "WorkspaceId":
        parsed = _parse_segments(value, _WORKSPACE_SEGMENTS, "Workspace", insensitive=False)
        return cls(**parsed)

    def id(self) -> str:
        return (
            f"/subscriptions/{self.subscription_id}"
            f"/resourceGroups/{self.resource_group_name}"
            f"/providers/{OPERATIONAL_INSIGHTS_NAMESPACE}/workspaces/{self.workspace_name}"
        )

    def __str__(self) -> str:
        return self.id()


@dataclass(frozen=True, slots=True)
class DataSourceTypeId:
    """Identifier of a linked storage account within a workspace."""

    subscription_id: str
    resource_group_name: str
    workspace_name: str
    data_source_type: DataSourceType

    @classmethod
    def parse(cls, value: str) -> "DataSourceTypeId":
        return cls._parse(value, insensitive=False)

    @classmethod
    def parse_insensitively(cls, value: str) -> "DataSourceTypeId":
        """Parse ``value`` ignoring the casing of static segments and the data source type.

        Resources recorded by earlier releases used a lower-cased data source
        type. Remove once those records have been migrated.
        """
        return cls._parse(value, insensitive=True)

    @classmethod
    def _parse(cls, value: str, insensitive: bool) -> "DataSourceTypeId":
        expected = "Data Source Type"
        parsed = _parse_segments(value, _DATA_SOURCE_TYPE_SEGMENTS, expected, insensitive=insensitive)
        raw_type = parsed.pop("data_source_type")
        try:
            data_source_type = DataSourceType.parse(raw_type)
        except ValueError as exc:
            raise InvalidResourceIdError(value, expected, str(exc)) from exc
        if not insensitive and data_source_type.value != raw_type:
            raise InvalidResourceIdError(
                value,
                expected,
                f"expected the data source type {data_source_type.value!r} but got {raw_type!r}",
            )
        return cls(data_source_type=data_source_type, **parsed)

    @classmethod
    def for_workspace(
        cls,
        workspace: WorkspaceId,
        resource_group_name: str,
        data_source_type: DataSourceType,
    ) -> "DataSourceTypeId":
        """The linked storage account's resource group is taken from its own field, not the workspace."""
        return cls(
            subscription_id=workspace.subscription_id,
            resource_group_name=resource_group_name,
            workspace_name=workspace.workspace_name,
            data_source_type=data_source_type,
        )

    def workspace_id(self) -> WorkspaceId:
        return WorkspaceId(self.subscription_id, self.resource_group_name, self.workspace_name)

    def id(self) -> str:
        return f"{self.workspace_id().id()}/linkedStorageAccounts/{self.data_source_type.value}"

    def __str__(self) -> str:
        return self.id()


def validate_resource_id(value: str) -> None:
    """Check ``value`` is a well-formed Azure resource id with a subscription."""
    expected = "Resource"
    segments = _split_segments(value, expected)
    if len(segments) % 2 != 0:
        raise InvalidResourceIdError(value, expected, "the number of path segments is not divisible by 2")
    components = {segments[index]: segments[index + 1] for index in range(0, len(segments), 2)}
    if "subscriptions" not in components:
        raise InvalidResourceIdError(value, expected, "no subscription ID found")


def validate_resource_group_name(value: str) -> None:
    if not value:
        raise ValueError("resource group name must not be empty")
    if len(value) > _RESOURCE_GROUP_MAX_LENGTH:
        raise ValueError(f"resource group name may be at most {_RESOURCE_GROUP_MAX_LENGTH} characters")
    if value.endswith("."):
        raise ValueError("resource group name cannot end with a period")
    if not _RESOURCE_GROUP_PATTERN.match(value):
        raise ValueError(
            "resource group name may only contain alphanumeric characters, dash, underscores, parentheses and periods"
        )
