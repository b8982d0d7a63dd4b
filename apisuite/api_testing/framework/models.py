"""
================================================================================
Data Models
================================================================================

Typed containers for the payloads the harness moves around:

    - AuthCredentials: username/password pair used by AuthManager.login
    - User: authenticated-user / profile record (DummyJSON user shape)
    - ResponseEnvelope: normalized result of every ApiClient request

================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union


@dataclass(frozen=True)
class AuthCredentials:
    """Credentials accepted by the login endpoint."""
    username: str
    password: str
    email: Optional[str] = None

    @classmethod
    def coerce(
        cls, value: Union["AuthCredentials", Mapping[str, Any]]
    ) -> "AuthCredentials":
        """Accept either an AuthCredentials or a mapping with the same keys."""
        if isinstance(value, cls):
            return value
        return cls(
            username=value["username"],
            password=value["password"],
            email=value.get("email"),
        )

    def to_payload(self) -> Dict[str, str]:
        """Body sent to the login endpoint."""
        return {"username": self.username, "password": self.password}

    def __repr__(self) -> str:
        return f"AuthCredentials(username={self.username!r}, password='***')"


@dataclass
class User:
    """
    User record as returned by the login and profile endpoints.

    Well-known fields are lifted into attributes; the complete payload stays
    available in ``raw`` (and through item access, ``user["company"]``).
    """
    id: Optional[int] = None
    username: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    gender: Optional[str] = None
    image: Optional[str] = None
    token: Optional[str] = None
    refresh_token: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "User":
        if not isinstance(payload, Mapping):
            raise TypeError(
                f"User payload must be a JSON object, got {type(payload).__name__}"
            )
        return cls(
            id=payload.get("id"),
            username=payload.get("username"),
            email=payload.get("email"),
            first_name=payload.get("firstName"),
            last_name=payload.get("lastName"),
            gender=payload.get("gender"),
            image=payload.get("image"),
            token=payload.get("token"),
            refresh_token=payload.get("refreshToken"),
            raw=dict(payload),
        )

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def __getitem__(self, key: str) -> Any:
        return self.raw[key]

    def get(self, key: str, default: Any = None) -> Any:
        return self.raw.get(key, default)


@dataclass(frozen=True)
class ResponseEnvelope:
    """
    Uniform shape of every ApiClient response.

    Attributes:
        status_code: HTTP status code
        success: True when status_code is in the 2xx range
        body: Parsed JSON payload (None for an empty body)
        headers: Response headers (lower-cased names, read-only)
        url: Final request URL
        elapsed_ms: Round-trip time in milliseconds
    """
    status_code: int
    success: bool
    body: Any
    headers: Mapping[str, str]
    url: str = ""
    elapsed_ms: float = 0.0

    @classmethod
    def build(
        cls,
        status_code: int,
        body: Any,
        headers: Mapping[str, str],
        url: str = "",
        elapsed_ms: float = 0.0,
    ) -> "ResponseEnvelope":
        return cls(
            status_code=status_code,
            success=200 <= status_code < 300,
            body=body,
            headers=MappingProxyType(dict(headers)),
            url=url,
            elapsed_ms=elapsed_ms,
        )

    def message(self) -> Optional[str]:
        """Server-supplied ``message`` field, when the body carries one."""
        if isinstance(self.body, Mapping):
            value = self.body.get("message")
            return str(value) if value is not None else None
        return None


__all__ = [
    "AuthCredentials",
    "ResponseEnvelope",
    "User",
]
