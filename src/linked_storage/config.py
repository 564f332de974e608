"""Configuration loading utilities for linked storage account automation."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .auth import DEFAULT_AUTHORITY_HOST

# Credential fields that fall back to the environment when absent or left as placeholders.
_ENVIRONMENT_FALLBACKS = {
    "tenant_id": "AZURE_TENANT_ID",
    "client_id": "AZURE_CLIENT_ID",
    "client_secret": "AZURE_CLIENT_SECRET",
}


def _is_placeholder(value: Any) -> bool:
    if not isinstance(value, str):
        return value is None
    stripped = value.strip()
    return not stripped or (stripped.startswith("<") and stripped.endswith(">"))


class AzureConfig(BaseModel):
    tenant_id: str
    client_id: str
    client_secret: str
    management_url: str = Field(
        "https://management.azure.com",
        description="Azure Resource Manager endpoint",
    )
    authority_host: str = Field(
        DEFAULT_AUTHORITY_HOST,
        description="Microsoft Entra ID authority used for the client credential flow",
    )
    api_version: str = Field(
        "2020-08-01",
        description="Microsoft.OperationalInsights API version for linked storage accounts",
    )

    @model_validator(mode="before")
    @classmethod
    def _apply_environment(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        values = dict(values)
        for key, env_name in _ENVIRONMENT_FALLBACKS.items():
            value = values.get(key)
            if _is_placeholder(value):
                env_value = os.getenv(env_name)
                if env_value:
                    values[key] = env_value
                else:
                    values.pop(key, None)
            elif isinstance(value, str):
                values[key] = value.strip()
        return values

    @field_validator("management_url", "authority_host")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        if not value.startswith("https://"):
            raise ValueError("endpoint must use https")
        return value.rstrip("/")


class TimeoutsConfig(BaseModel):
    """Per-operation time budgets, in seconds."""

    create: float = Field(30 * 60, gt=0)
    read: float = Field(5 * 60, gt=0)
    update: float = Field(30 * 60, gt=0)
    delete: float = Field(30 * 60, gt=0)

    def for_operation(self, operation: str) -> float:
        if operation not in {"create", "read", "update", "delete"}:
            raise ValueError(f"unknown operation '{operation}'")
        return getattr(self, operation)


class StateConfig(BaseModel):
    path: str = Field("./state", description="Filesystem path for state persistence")


class AutomationConfig(BaseModel):
    azure: AzureConfig
    timeouts: TimeoutsConfig = Field(default_factory=TimeoutsConfig)
    state: StateConfig = Field(default_factory=StateConfig)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "AutomationConfig":
        return cls.model_validate(raw)

    @classmethod
    def from_yaml(cls, path: Path) -> "AutomationConfig":
        data = yaml.safe_load(path.read_text()) or {}
        return cls.from_dict(data)


def load_config(path: str | Path) -> AutomationConfig:
    """Load an AutomationConfig from a YAML file."""
    config_path = Path(path).expanduser().resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")
    return AutomationConfig.from_yaml(config_path)
