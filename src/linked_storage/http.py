"""HTTP utilities for working with Azure Resource Manager responses."""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional

from requests import Response


def _request_url(response: Response) -> str:
    return response.request.url if response.request else "<unknown>"


@dataclass(slots=True)
class UnexpectedResponseError(RuntimeError):
    """Raised when an HTTP response payload is not the expected JSON."""

    status_code: int
    url: str
    body_preview: str

    def __str__(self) -> str:  # noqa: D401 - simple representation
        return (
            f"Unexpected response while calling {self.url} (status {self.status_code}): "
            f"{self.body_preview}"
        )


@dataclass(slots=True)
class ManagementApiError(RuntimeError):
    """Raised for non-success responses from the management API."""

    status_code: int
    url: str
    code: Optional[str] = None
    message: Optional[str] = None

    def __str__(self) -> str:
        detail = self.message or "<no error message>"
        if self.code:
            detail = f"{self.code}: {detail}"
        return f"unexpected status {self.status_code} from {self.url}: {detail}"


def parse_json(response: Response) -> Any:
    """Return JSON content or raise UnexpectedResponseError with helpful context."""

    if not response.content:
        raise UnexpectedResponseError(
            status_code=response.status_code,
            url=_request_url(response),
            body_preview="<empty body>",
        )
    try:
        return response.json()
    except json.JSONDecodeError as exc:
        text = response.text
        preview = text[:500].replace("\n", " ").strip()
        raise UnexpectedResponseError(
            status_code=response.status_code,
            url=_request_url(response),
            body_preview=preview or "<no text>",
        ) from exc


def management_error(response: Response) -> ManagementApiError:
    """Build a ManagementApiError from the ARM error envelope, if one is present."""

    code: Optional[str] = None
    message: Optional[str] = None
    try:
        payload = response.json() if response.content else None
    except json.JSONDecodeError:
        payload = None
    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        code = payload["error"].get("code")
        message = payload["error"].get("message")
    elif response.text:
        message = response.text[:500].replace("\n", " ").strip()
    return ManagementApiError(
        status_code=response.status_code,
        url=_request_url(response),
        code=code,
        message=message,
    )
