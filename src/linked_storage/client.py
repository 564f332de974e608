"""Management-plane client for Log Analytics linked storage accounts."""
from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .auth import MANAGEMENT_SCOPE
from .http import UnexpectedResponseError, management_error, parse_json
from .ids import DataSourceTypeId
from .models import LinkedStorageAccountsResource
from .timeouts import Deadline

logger = logging.getLogger(__name__)


class TokenProvider(Protocol):
    def acquire_token(self, scope: str = ...) -> str:
        ...


def _linked_storage_account(response: requests.Response) -> LinkedStorageAccountsResource:
    payload = parse_json(response)
    if not isinstance(payload, dict):
        logger.error("Expected a JSON object from the management API, got: %s", response.text)
        raise UnexpectedResponseError(
            status_code=response.status_code,
            url=response.request.url if response.request else "<unknown>",
            body_preview=response.text[:500].replace("\n", " ").strip() or "<no text>",
        )
    return LinkedStorageAccountsResource.from_payload(payload)


class LinkedStorageAccountsClient:
    """Performs Get, CreateOrUpdate and Delete against the management API."""

    def __init__(
        self,
        credentials: TokenProvider,
        *,
        management_url: str = "https://management.azure.com",
        api_version: str = "2020-08-01",
        session: Optional[requests.Session] = None,
    ) -> None:
        self._credentials = credentials
        self._mgmt_url = management_url.rstrip("/")
        self._api_version = api_version
        self._session = session or requests.Session()

    def get(self, resource_id: DataSourceTypeId, deadline: Deadline) -> Optional[LinkedStorageAccountsResource]:
        """Return the remote resource, or ``None`` when it does not exist."""
        response = self._authorized_request("GET", self._url(resource_id), deadline)
        if response.status_code == 404:
            logger.debug("Linked storage account '%s' not found", resource_id)
            return None
        if response.status_code != 200:
            logger.error("Fetching linked storage account failed: %s", response.text)
            raise management_error(response)
        return _linked_storage_account(response)

    def create_or_update(
        self,
        resource_id: DataSourceTypeId,
        parameters: LinkedStorageAccountsResource,
        deadline: Deadline,
    ) -> LinkedStorageAccountsResource:
        logger.info("Creating or updating linked storage account '%s'", resource_id)
        response = self._authorized_request("PUT", self._url(resource_id), deadline, json=parameters.to_payload())
        if response.status_code not in {200, 201}:
            logger.error("Linked storage account creation failed: %s", response.text)
            raise management_error(response)
        if not response.content:
            return parameters
        return _linked_storage_account(response)

    def delete(self, resource_id: DataSourceTypeId, deadline: Deadline) -> bool:
        """Delete the resource; returns False when it was already gone."""
        response = self._authorized_request("DELETE", self._url(resource_id), deadline)
        if response.status_code in {200, 202, 204}:
            logger.info("Deleted linked storage account '%s'", resource_id)
            return True
        if response.status_code == 404:
            logger.info("Linked storage account '%s' not found; skipping delete", resource_id)
            return False
        logger.error("Failed to delete linked storage account '%s': %s", resource_id, response.text)
        raise management_error(response)

    def _url(self, resource_id: DataSourceTypeId) -> str:
        return f"{self._mgmt_url}{resource_id.id()}"

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type(requests.ConnectionError),
        reraise=True,
    )
    def _authorized_request(self, method: str, url: str, deadline: Deadline, **kwargs: Any) -> requests.Response:
        token = self._credentials.acquire_token(MANAGEMENT_SCOPE)
        headers = kwargs.pop("headers", {})
        headers["Authorization"] = f"Bearer {token}"
        headers.setdefault("Content-Type", "application/json")
        headers.setdefault("Accept", "application/json")
        params = kwargs.pop("params", {})
        params.setdefault("api-version", self._api_version)
        return self._session.request(
            method,
            url,
            headers=headers,
            params=params,
            timeout=deadline.request_timeout(),
            **kwargs,
        )
