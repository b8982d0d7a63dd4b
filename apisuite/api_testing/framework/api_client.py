"""
================================================================================
Async API Client with Allure Integration
================================================================================

A scoped HTTP client for API tests featuring:
    - One live request context at a time, bound to a base URL and a fixed,
      read-only header set
    - Context rebuild with a bearer token (the previous context is disposed)
    - Verb helpers returning a uniform ResponseEnvelope
    - Allure reporting with redacted headers/body and cURL reproduction

Nothing is retried here: transport errors (httpx.HTTPError) and JSON parse
errors surface to the caller unchanged.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import json
import time
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

import allure
import httpx
from allure_commons.types import AttachmentType
from loguru import logger

from .config_loader import ConfigLoader
from .models import ResponseEnvelope


# Maximum response length to include in Allure reports
MAX_RESPONSE_LENGTH = 3000

DEFAULT_TIMEOUT = 30.0

DEFAULT_HEADERS: Mapping[str, str] = MappingProxyType({
    "Accept": "application/json",
    "Content-Type": "application/json",
})

SENSITIVE_HEADERS = {"authorization", "x-api-key", "cookie", "set-cookie"}
SENSITIVE_FIELDS = ["password", "secret", "token", "api_key", "authorization", "session"]
MASK = "***MASKED***"


class ApiClientError(Exception):
    """Base exception for API client errors."""
    pass


class ContextNotInitialized(ApiClientError):
    """Raised when a request is issued without a live request context."""

    def __init__(self, message: str = "Context not initialized. Call create_context() first.") -> None:
        super().__init__(message)


class RequestContext:
    """
    A live network context bound to one base URL and one header set.

    The header set is fixed at creation; changing it (e.g. adding a bearer
    token) means building a new context.
    """

    def __init__(
        self,
        base_url: str,
        headers: Mapping[str, str],
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url
        self.headers: Mapping[str, str] = MappingProxyType(dict(headers))
        self._client: Optional[httpx.AsyncClient] = httpx.AsyncClient(
            base_url=base_url,
            headers=dict(headers),
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    @property
    def authenticated(self) -> bool:
        return "Authorization" in self.headers

    @property
    def disposed(self) -> bool:
        return self._client is None

    async def send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if self._client is None:
            raise ContextNotInitialized("Request context has been disposed")
        return await self._client.request(method, url, **kwargs)

    async def dispose(self) -> None:
        if self._client is not None:
            client, self._client = self._client, None
            await client.aclose()

    def __repr__(self) -> str:
        state = "disposed" if self.disposed else "live"
        auth = "authenticated" if self.authenticated else "anonymous"
        return f"<RequestContext {self.base_url} {auth} {state}>"


class ApiClient:
    """
    Reusable API client that hides context creation and response handling.

    Usage:
        >>> client = ApiClient("https://dummyjson.com")
        >>> await client.create_context()
        >>> envelope = await client.get("/products", params={"limit": 5})
        >>> envelope.success, envelope.body["limit"]
        (True, 5)
        >>> await client.dispose()
    """

    def __init__(
        self,
        base_url: str,
        headers: Optional[Mapping[str, str]] = None,
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_response_length: int = MAX_RESPONSE_LENGTH,
    ) -> None:
        """
        Args:
            base_url: Base URL for every request
            headers: Extra headers merged over the JSON defaults
            timeout: Transport timeout in seconds
            transport: Optional httpx transport (e.g. httpx.MockTransport)
            max_response_length: Truncation limit for Allure response bodies
        """
        self.base_url = base_url
        self.headers: Mapping[str, str] = MappingProxyType(
            {**DEFAULT_HEADERS, **(headers or {})}
        )
        self.timeout = float(timeout) if timeout is not None else DEFAULT_TIMEOUT
        self.transport = transport
        self.max_response_length = max_response_length
        self._context: Optional[RequestContext] = None

    @classmethod
    def from_config(
        cls,
        config: Optional[ConfigLoader] = None,
        headers: Optional[Mapping[str, str]] = None,
        **kwargs: Any,
    ) -> "ApiClient":
        """Build a client from api.base_url / api.timeout."""
        if config is None:
            config = ConfigLoader()
        return cls(
            config.get("api.base_url", "https://dummyjson.com"),
            headers,
            timeout=config.get("api.timeout", DEFAULT_TIMEOUT),
            max_response_length=int(
                config.get("report.max_response_length", MAX_RESPONSE_LENGTH)
            ),
            **kwargs,
        )

    async def __aenter__(self) -> "ApiClient":
        if self._context is None:
            await self.create_context()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.dispose()

    @property
    def context(self) -> Optional[RequestContext]:
        return self._context

    @property
    def has_context(self) -> bool:
        return self._context is not None

    async def create_context(self, token: Optional[str] = None) -> RequestContext:
        """
        Open a new request context, disposing the one it replaces.

        Args:
            token: Optional bearer token added as an Authorization header
        """
        headers = dict(self.headers)
        if token:
            headers["Authorization"] = f"Bearer {token}"

        previous = self._context
        self._context = None
        if previous is not None:
            await previous.dispose()

        self._context = RequestContext(
            self.base_url,
            headers,
            timeout=self.timeout,
            transport=self.transport,
        )
        logger.debug(f"Created {self._context!r}")
        return self._context

    async def get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> ResponseEnvelope:
        """Execute GET request."""
        return await self._request("GET", path, params=params)

    async def post(self, path: str, data: Any = None) -> ResponseEnvelope:
        """Execute POST request with a JSON body."""
        return await self._request("POST", path, json=data)

    async def put(self, path: str, data: Any = None) -> ResponseEnvelope:
        """Execute PUT request with a JSON body."""
        return await self._request("PUT", path, json=data)

    async def patch(self, path: str, data: Any = None) -> ResponseEnvelope:
        """Execute PATCH request with a JSON body."""
        return await self._request("PATCH", path, json=data)

    async def delete(self, path: str) -> ResponseEnvelope:
        """Execute DELETE request."""
        return await self._request("DELETE", path)

    async def dispose(self) -> None:
        """Close the live context, if any. Safe to call repeatedly."""
        context, self._context = self._context, None
        if context is not None:
            await context.dispose()
            logger.debug(f"Disposed {context!r}")

    async def _request(self, method: str, path: str, **kwargs: Any) -> ResponseEnvelope:
        """
        Send one request through the live context and normalize the result.

        Raises:
            ContextNotInitialized: No context has been created (or it was disposed)
            httpx.HTTPError: Transport failures, unchanged
            json.JSONDecodeError: Non-empty body that is not JSON
        """
        context = self._context
        if context is None:
            raise ContextNotInitialized()

        kwargs = {k: v for k, v in kwargs.items() if v is not None}

        started = time.perf_counter()
        response = await context.send(method, path, **kwargs)
        elapsed_ms = (time.perf_counter() - started) * 1000

        logger.info(f"{method} {path} -> {response.status_code} ({elapsed_ms:.0f} ms)")
        self._log_to_allure(method, path, context.headers, kwargs, response)

        return ResponseEnvelope.build(
            status_code=response.status_code,
            body=self._parse_body(response),
            headers=response.headers,
            url=str(response.url),
            elapsed_ms=elapsed_ms,
        )

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        if not response.content.strip():
            return None
        return response.json()

    def _log_to_allure(
        self,
        method: str,
        path: str,
        headers: Mapping[str, str],
        kwargs: Dict[str, Any],
        response: httpx.Response,
    ) -> None:
        """
        Attach request/response details to the Allure report.

        Attaches the request URL, redacted headers and body, query
        parameters, a cURL command, the response status and the
        (truncated) response body.
        """
        full_url = str(response.url)
        status_emoji = "✅" if response.status_code < 400 else "❌"
        step_title = f"{status_emoji} {method} {path} → {response.status_code}"

        with allure.step(step_title):
            allure.attach(
                full_url,
                name="🔗 Request URL",
                attachment_type=AttachmentType.TEXT,
            )

            safe_headers = self._redact_headers(headers)
            allure.attach(
                json.dumps(safe_headers, ensure_ascii=False, indent=2),
                name="📤 Request Headers",
                attachment_type=AttachmentType.JSON,
            )

            safe_body = self._redact_body(kwargs.get("json"))
            if safe_body is not None:
                allure.attach(
                    json.dumps(safe_body, ensure_ascii=False, indent=2),
                    name="📤 Request Body",
                    attachment_type=AttachmentType.JSON,
                )

            params = kwargs.get("params")
            if params:
                allure.attach(
                    json.dumps(dict(params), ensure_ascii=False, indent=2, default=str),
                    name="📤 Query Params",
                    attachment_type=AttachmentType.JSON,
                )

            allure.attach(
                self._build_curl(method, full_url, safe_headers, safe_body),
                name="🔧 cURL Command",
                attachment_type=AttachmentType.TEXT,
            )

            allure.attach(
                f"{status_emoji} {response.status_code}",
                name="📥 Response Status",
                attachment_type=AttachmentType.TEXT,
            )

            response_content = response.text or "<empty>"
            if len(response_content) > self.max_response_length:
                response_content = (
                    f"{response_content[:self.max_response_length]}\n\n"
                    f"... [Truncated, full length: {len(response_content)} chars] ..."
                )
            allure.attach(
                response_content,
                name="📥 Response Body",
                attachment_type=AttachmentType.TEXT,
            )

    def _redact_headers(self, headers: Mapping[str, Any]) -> Dict[str, Any]:
        """Mask sensitive header values before logging."""
        return {
            key: MASK if key.lower() in SENSITIVE_HEADERS else value
            for key, value in headers.items()
        }

    def _redact_body(self, payload: Any) -> Any:
        """Recursively mask sensitive fields in request bodies."""
        if isinstance(payload, Mapping):
            redacted = {}
            for key, value in payload.items():
                if any(token in str(key).lower() for token in SENSITIVE_FIELDS):
                    redacted[key] = MASK
                else:
                    redacted[key] = self._redact_body(value)
            return redacted
        if isinstance(payload, list):
            return [self._redact_body(item) for item in payload]
        return payload

    def _build_curl(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Any,
    ) -> str:
        """Build a copy-paste ready cURL command (headers already redacted)."""
        parts = [f"curl -X {method}"]
        for key, value in headers.items():
            parts.append(f"-H '{key}: {value}'")
        if body is not None:
            parts.append(f"-d '{json.dumps(body, ensure_ascii=False)}'")
        parts.append(f"'{url}'")
        return " \\\n  ".join(parts)

    def __repr__(self) -> str:
        return f"<ApiClient {self.base_url} context={self._context!r}>"


# Pre-configured clients for the public practice APIs
dummyjson_client = ApiClient("https://dummyjson.com")
reqres_client = ApiClient("https://reqres.in/api")


__all__ = [
    "ApiClient",
    "ApiClientError",
    "ContextNotInitialized",
    "DEFAULT_HEADERS",
    "RequestContext",
    "dummyjson_client",
    "reqres_client",
]
