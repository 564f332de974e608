from __future__ import annotations

import json
from collections import deque

import pytest
from requests import Request, Response

from linked_storage.auth import MANAGEMENT_SCOPE, AuthenticationError, ClientCredentialProvider


def _token_response(token: str, expires_in: int = 120, status: int = 200) -> Response:
    response = Response()
    response.status_code = status
    response._content = json.dumps(
        {"access_token": token, "expires_in": expires_in}
    ).encode("utf-8")
    response.headers["Content-Type"] = "application/json"
    response.encoding = "utf-8"
    response.request = Request("POST", "https://login.microsoftonline.com/token").prepare()
    return response


def test_acquire_token_caches_and_refreshes(monkeypatch: pytest.MonkeyPatch) -> None:
    provider = ClientCredentialProvider(
        tenant_id="tenant",
        client_id="client",
        client_secret="secret",
    )

    call_history: deque[str] = deque()

    def fake_post(url: str, data: dict[str, str], timeout: int, **kwargs) -> Response:  # type: ignore[override]
        index = len(call_history) + 1
        call_history.append(data["scope"])
        return _token_response(f"token{index}", expires_in=120)

    current_time = {"value": 1_000.0}

    monkeypatch.setattr("linked_storage.auth.requests.post", fake_post)
    monkeypatch.setattr("linked_storage.auth.time.time", lambda: current_time["value"])

    first = provider.acquire_token()
    assert first == "token1"
    assert list(call_history) == [MANAGEMENT_SCOPE]

    current_time["value"] = 1_010.0
    assert provider.acquire_token() == "token1"
    assert len(call_history) == 1

    current_time["value"] = 1_120.0
    assert provider.acquire_token() == "token2"
    assert list(call_history) == [MANAGEMENT_SCOPE, MANAGEMENT_SCOPE]


def test_acquire_token_uses_authority_host(monkeypatch: pytest.MonkeyPatch) -> None:
    provider = ClientCredentialProvider(
        tenant_id="tenant",
        client_id="client",
        client_secret="secret",
        authority_host="https://login.microsoftonline.us/",
    )
    urls: list[str] = []

    def fake_post(url: str, data: dict[str, str], timeout: int, **kwargs) -> Response:  # type: ignore[override]
        urls.append(url)
        assert data["grant_type"] == "client_credentials"
        return _token_response("token")

    monkeypatch.setattr("linked_storage.auth.requests.post", fake_post)

    provider.acquire_token()

    assert urls == ["https://login.microsoftonline.us/tenant/oauth2/v2.0/token"]


def test_acquire_token_raises_authentication_error(monkeypatch: pytest.MonkeyPatch) -> None:
    provider = ClientCredentialProvider(tenant_id="tenant", client_id="client", client_secret="wrong")

    def fake_post(url: str, data: dict[str, str], timeout: int, **kwargs) -> Response:  # type: ignore[override]
        response = _token_response("unused", status=401)
        response._content = b'{"error": "invalid_client"}'
        return response

    monkeypatch.setattr("linked_storage.auth.requests.post", fake_post)

    with pytest.raises(AuthenticationError) as excinfo:
        provider.acquire_token()

    assert excinfo.value.status_code == 401
    assert "invalid_client" in str(excinfo.value)
