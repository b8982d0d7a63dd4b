"""
================================================================================
Unit Test Fixtures
================================================================================

Offline fixtures: a small in-process stand-in for the DummyJSON auth and
product endpoints, served through httpx.MockTransport, so the framework can be
exercised without network access.

================================================================================
"""

from __future__ import annotations

import json
from typing import Any, AsyncGenerator, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio

from apisuite.api_testing.framework import (
    ApiClient,
    AuthManager,
    ConfigLoader,
    TestDataManager,
)


BASE_URL = "https://dummyjson.test"


def _user(user_id: int, username: str, first: str, last: str, gender: str) -> Dict[str, Any]:
    return {
        "id": user_id,
        "username": username,
        "email": f"{first.lower()}.{last.lower()}@x.dummyjson.com",
        "firstName": first,
        "lastName": last,
        "gender": gender,
        "image": f"https://dummyjson.com/icon/{username}/128",
    }


class FakeDummyJson:
    """
    Request handler mimicking the DummyJSON endpoints used by the harness.

    Attributes:
        requests: Every request received, in order
        token_field: Name of the token field in login responses
                     ("accessToken" like current DummyJSON, or "token")
        revoked: Tokens that /auth/me rejects with 401
    """

    def __init__(self) -> None:
        self.accounts: Dict[str, Dict[str, Any]] = {
            "emilys": {"password": "emilyspass", **_user(1, "emilys", "Emily", "Johnson", "female")},
            "michaelw": {"password": "michaelwpass", **_user(2, "michaelw", "Michael", "Williams", "male")},
        }
        self.products: Dict[int, Dict[str, Any]] = {
            1: {"id": 1, "title": "Essence Mascara Lash Princess", "price": 9.99},
        }
        self.requests: List[httpx.Request] = []
        self.token_field = "accessToken"
        self.include_both_tokens = False
        self.revoked: set = set()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "POST" and path == "/auth/login":
            return self._login(request)
        if request.method == "GET" and path == "/auth/me":
            return self._me(request)
        if path == "/plain":
            return httpx.Response(200, text="<html>not json</html>")
        if path == "/empty":
            return httpx.Response(204)
        if path == "/echo":
            return httpx.Response(
                200,
                json={
                    "method": request.method,
                    "params": dict(request.url.params),
                    "body": json.loads(request.content) if request.content else None,
                },
                headers={"X-Request-Id": "req-1"},
            )
        if path.startswith("/products"):
            return self._products(request)
        return httpx.Response(404, json={"message": f"Route {path} not found"})

    @property
    def last_request(self) -> Optional[httpx.Request]:
        return self.requests[-1] if self.requests else None

    def token_for(self, username: str) -> str:
        return f"token-{username}"

    def _login(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content or b"{}")
        account = self.accounts.get(body.get("username", ""))
        if account is None or account["password"] != body.get("password"):
            return httpx.Response(400, json={"message": "Invalid credentials"})

        payload = {k: v for k, v in account.items() if k != "password"}
        token = self.token_for(account["username"])
        if self.include_both_tokens:
            payload["accessToken"] = token
            payload["token"] = "legacy-" + token
        else:
            payload[self.token_field] = token
        payload["refreshToken"] = "refresh-" + token
        return httpx.Response(200, json=payload)

    def _me(self, request: httpx.Request) -> httpx.Response:
        auth = request.headers.get("Authorization", "")
        if not auth.startswith("Bearer "):
            return httpx.Response(401, json={"message": "Access Token is required"})
        token = auth[len("Bearer "):]
        if token in self.revoked:
            return httpx.Response(401, json={"message": "Invalid/Expired Token!"})
        for account in self.accounts.values():
            if self.token_for(account["username"]) == token:
                return httpx.Response(
                    200, json={k: v for k, v in account.items() if k != "password"}
                )
        return httpx.Response(401, json={"message": "Invalid/Expired Token!"})

    def _products(self, request: httpx.Request) -> httpx.Response:
        parts = request.url.path.strip("/").split("/")
        if request.method == "POST" and parts[1:] == ["add"]:
            product = {"id": max(self.products) + 1, **json.loads(request.content)}
            return httpx.Response(201, json=product)
        if len(parts) == 2 and parts[1].isdigit():
            product_id = int(parts[1])
            product = self.products.get(product_id)
            if product is None:
                return httpx.Response(
                    404, json={"message": f"Product with id '{product_id}' not found"}
                )
            if request.method == "GET":
                return httpx.Response(200, json=product)
            if request.method in ("PUT", "PATCH"):
                return httpx.Response(200, json={**product, **json.loads(request.content)})
            if request.method == "DELETE":
                return httpx.Response(200, json={**product, "isDeleted": True})
        return httpx.Response(
            200, json={"products": list(self.products.values()), "total": len(self.products)}
        )


@pytest.fixture
def fake_api() -> FakeDummyJson:
    return FakeDummyJson()


@pytest.fixture
def transport(fake_api: FakeDummyJson) -> httpx.MockTransport:
    return httpx.MockTransport(fake_api)


@pytest_asyncio.fixture
async def api_client(transport: httpx.MockTransport) -> AsyncGenerator[ApiClient, None]:
    client = ApiClient(BASE_URL, transport=transport)
    yield client
    await client.dispose()


@pytest.fixture
def auth_manager(api_client: ApiClient) -> AuthManager:
    return AuthManager(api_client)


@pytest.fixture
def store() -> TestDataManager:
    """A private store per test."""
    return TestDataManager()


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Write a YAML config to tmp_path and load it as the shared ConfigLoader."""
    import yaml

    def _load(data: Dict[str, Any]) -> ConfigLoader:
        config_path = tmp_path / "config.yaml"
        config_path.write_text(yaml.dump(data), encoding="utf-8")
        ConfigLoader.reset()
        return ConfigLoader(config_path=config_path)

    yield _load
    ConfigLoader.reset()
