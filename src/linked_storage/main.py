"""CLI entrypoint for linked storage account automation."""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from dotenv import load_dotenv

from .config import load_config
from .ids import InvalidResourceIdError
from .models import ResourceRecord
from .resource import RemoteOperationError, ResourceAlreadyExistsError, ResourceNotFoundError
from .schema import SchemaValidationError
from .service import LinkedStorageAccountService


def _configure_logging() -> None:
    env_level = os.getenv("LINKED_STORAGE_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, env_level, None)
    if not isinstance(level, int):
        level = logging.INFO
        logging.warning(
            "Unrecognized LINKED_STORAGE_LOG_LEVEL '%s'; defaulting to INFO",
            env_level,
        )
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s - %(message)s")


load_dotenv(Path.cwd() / ".env", override=False)
_configure_logging()

app = typer.Typer(help="Log Analytics linked storage account automation")


def _record_payload(record: ResourceRecord) -> Dict[str, Any]:
    data = record.data
    return {
        "name": record.name,
        "id": data.id,
        "data_source_type": data.data_source_type,
        "resource_group_name": data.resource_group_name,
        "workspace_resource_id": data.workspace_resource_id,
        "storage_account_ids": sorted(data.storage_account_ids),
    }


def _raw_input(
    data_source_type: str,
    resource_group_name: str,
    workspace_resource_id: str,
    storage_account_ids: Optional[List[str]],
) -> Dict[str, Any]:
    return {
        "data_source_type": data_source_type,
        "resource_group_name": resource_group_name,
        "workspace_resource_id": workspace_resource_id,
        "storage_account_ids": storage_account_ids or [],
    }


def _fail(exc: Exception, code: int) -> typer.Exit:
    typer.secho(str(exc), fg=typer.colors.RED, err=True)
    return typer.Exit(code=code)


@app.command("plan")
def plan(
    name: str,
    config: Path = typer.Option(..., exists=True, readable=True, help="Path to automation config YAML"),
    data_source_type: str = typer.Option(..., help="customlogs, azurewatson, query, alerts or ingestion"),
    resource_group_name: str = typer.Option(..., help="Resource group of the linked storage account"),
    workspace_resource_id: str = typer.Option(..., help="Resource ID of the Log Analytics workspace"),
    storage_account_id: Optional[List[str]] = typer.Option(None, help="Storage account resource ID (repeatable)"),
) -> None:
    """Show which action apply would take, without calling Azure."""

    service = LinkedStorageAccountService(load_config(config))
    raw = _raw_input(data_source_type, resource_group_name, workspace_resource_id, storage_account_id)
    try:
        action = service.plan(name, raw)
    except SchemaValidationError as exc:
        raise _fail(exc, 1) from exc
    typer.echo(json.dumps({"name": name, "action": action.value}, indent=2))


@app.command("apply")
def apply(
    name: str,
    config: Path = typer.Option(..., exists=True, readable=True, help="Path to automation config YAML"),
    data_source_type: str = typer.Option(..., help="customlogs, azurewatson, query, alerts or ingestion"),
    resource_group_name: str = typer.Option(..., help="Resource group of the linked storage account"),
    workspace_resource_id: str = typer.Option(..., help="Resource ID of the Log Analytics workspace"),
    storage_account_id: Optional[List[str]] = typer.Option(None, help="Storage account resource ID (repeatable)"),
) -> None:
    """Create, update or replace a linked storage account."""

    service = LinkedStorageAccountService(load_config(config))
    raw = _raw_input(data_source_type, resource_group_name, workspace_resource_id, storage_account_id)
    try:
        result = service.apply(name, raw)
    except (SchemaValidationError, InvalidResourceIdError) as exc:
        raise _fail(exc, 1) from exc
    except ResourceAlreadyExistsError as exc:
        raise _fail(exc, 2) from exc
    except RemoteOperationError as exc:
        raise _fail(exc, 3) from exc

    payload: Dict[str, Any] = {"name": name, "action": result.action.value}
    if result.record is not None:
        payload.update(_record_payload(result.record))
    typer.echo(json.dumps(payload, indent=2))


@app.command("show")
def show(
    name: str,
    config: Path = typer.Option(..., exists=True, readable=True, help="Path to automation config YAML"),
    refresh: bool = typer.Option(True, help="Read the remote resource before printing"),
) -> None:
    """Print the tracked state of a linked storage account."""

    service = LinkedStorageAccountService(load_config(config))
    try:
        record = service.refresh(name) if refresh else service.show(name)
    except InvalidResourceIdError as exc:
        raise _fail(exc, 1) from exc
    except RemoteOperationError as exc:
        raise _fail(exc, 3) from exc

    if record is None:
        typer.secho(f"'{name}' is not tracked in state.", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(_record_payload(record), indent=2))


@app.command("destroy")
def destroy(
    name: str,
    config: Path = typer.Option(..., exists=True, readable=True, help="Path to automation config YAML"),
) -> None:
    """Delete the linked storage account and stop tracking it."""

    service = LinkedStorageAccountService(load_config(config))
    try:
        removed = service.destroy(name)
    except InvalidResourceIdError as exc:
        raise _fail(exc, 1) from exc
    except RemoteOperationError as exc:
        raise _fail(exc, 3) from exc
    typer.echo(json.dumps({"name": name, "destroyed": removed}, indent=2))


@app.command("list")
def list_records(
    config: Path = typer.Option(..., exists=True, readable=True, help="Path to automation config YAML"),
) -> None:
    """List every linked storage account tracked in state."""

    service = LinkedStorageAccountService(load_config(config))
    records = service.list_records()
    typer.echo(json.dumps([_record_payload(record) for record in records], indent=2))


@app.command("import")
def import_resource(
    name: str,
    resource_id: str,
    config: Path = typer.Option(..., exists=True, readable=True, help="Path to automation config YAML"),
) -> None:
    """Start tracking an existing linked storage account."""

    service = LinkedStorageAccountService(load_config(config))
    try:
        record = service.import_resource(name, resource_id)
    except (InvalidResourceIdError, ResourceNotFoundError, ValueError) as exc:
        raise _fail(exc, 1) from exc
    except RemoteOperationError as exc:
        raise _fail(exc, 3) from exc
    typer.echo(json.dumps(_record_payload(record), indent=2))


if __name__ == "__main__":
    app()
