"""Client credential authentication against Microsoft Entra ID."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Dict

import requests

from .http import parse_json

logger = logging.getLogger(__name__)

DEFAULT_AUTHORITY_HOST = "https://login.microsoftonline.com"
MANAGEMENT_SCOPE = "https://management.azure.com/.default"


@dataclass(slots=True)
class OAuthToken:
    access_token: str
    expires_at: float

    def is_expired(self) -> bool:
        return time.time() >= self.expires_at - 60  # refresh 1 min early


@dataclass(slots=True)
class AuthenticationError(RuntimeError):
    """Raised when the token endpoint rejects the client credentials."""

    tenant_id: str
    status_code: int
    detail: str

    def __str__(self) -> str:
        return f"acquiring token for tenant {self.tenant_id!r} failed (status {self.status_code}): {self.detail}"


class ClientCredentialProvider:
    """Client credential flow with a per-scope token cache."""

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        authority_host: str = DEFAULT_AUTHORITY_HOST,
    ) -> None:
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.authority_host = authority_host.rstrip("/")
        self._cache: Dict[str, OAuthToken] = {}

    def acquire_token(self, scope: str = MANAGEMENT_SCOPE) -> str:
        cached = self._cache.get(scope)
        if cached and not cached.is_expired():
            return cached.access_token

        token = self._request_token(scope)
        self._cache[scope] = token
        return token.access_token

    def _request_token(self, scope: str) -> OAuthToken:
        token_url = f"{self.authority_host}/{self.tenant_id}/oauth2/v2.0/token"
        payload = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "scope": scope,
            "grant_type": "client_credentials",
        }
        logger.debug("Requesting token for scope '%s'", scope)
        response = requests.post(token_url, data=payload, timeout=30)
        if response.status_code >= 400:
            logger.error("Failed to acquire token: %s", response.text)
            raise AuthenticationError(
                tenant_id=self.tenant_id,
                status_code=response.status_code,
                detail=response.text[:500],
            )
        body = parse_json(response)
        expires_in = int(body.get("expires_in", 3600))
        return OAuthToken(access_token=body["access_token"], expires_at=time.time() + expires_in)
