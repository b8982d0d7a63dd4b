"""
================================================================================
Authentication Manager
================================================================================

Turns a username/password pair into a live session and keeps the underlying
ApiClient context authenticated.

Session lifecycle:
    LoggedOut --login()--> LoggedIn --logout()--> LoggedOut

Login is two-phase: credentials are posted through an anonymous context, and
once the token is known a new context carrying the bearer header replaces it.
A failed login leaves the anonymous context in place until logout() (or the
next login) disposes it.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Union

import allure
from loguru import logger

from .api_client import ApiClient, dummyjson_client, reqres_client
from .config_loader import ConfigLoader
from .models import AuthCredentials, User


DEFAULT_LOGIN_PATH = "/auth/login"
DEFAULT_ME_PATH = "/auth/me"

CredentialsLike = Union[AuthCredentials, Mapping[str, Any]]


class AuthError(Exception):
    """Base exception for authentication errors."""
    pass


class AuthenticationFailed(AuthError):
    """Raised when the login endpoint answers with a non-2xx status."""

    def __init__(self, status_code: int, server_message: Optional[str] = None) -> None:
        self.status_code = status_code
        self.server_message = server_message or "Unknown error"
        super().__init__(f"Login failed: {status_code} - {self.server_message}")


class NoAuthenticatedUser(AuthError):
    """Raised when a profile is requested without a live, token-bearing session."""

    def __init__(self) -> None:
        super().__init__("No authenticated user")


class ProfileFetchFailed(AuthError):
    """Raised when the authenticated profile request answers with a non-2xx status."""

    def __init__(self, status_code: int, server_message: Optional[str] = None) -> None:
        self.status_code = status_code
        self.server_message = server_message
        super().__init__(f"Failed to get user: {status_code}")


class AuthManager:
    """
    Session-state wrapper around one ApiClient.

    Usage:
        >>> auth = AuthManager(ApiClient("https://dummyjson.com"))
        >>> user = await auth.login(TEST_USERS["emily"])
        >>> auth.is_authenticated()
        True
        >>> profile = await auth.get_current_user()
        >>> await auth.logout()
    """

    def __init__(
        self,
        api_client: ApiClient,
        *,
        login_path: Optional[str] = None,
        me_path: Optional[str] = None,
        expires_in_mins: Optional[int] = None,
        config: Optional[ConfigLoader] = None,
    ) -> None:
        """
        Args:
            api_client: Client whose context this manager drives
            login_path: Login endpoint (auth.login_path when a config is given)
            me_path: Profile endpoint (auth.me_path when a config is given)
            expires_in_mins: Optional token lifetime sent as expiresInMins
            config: Configuration loader used for the defaults above
        """
        self.api_client = api_client
        if config is not None:
            login_path = login_path or config.get("auth.login_path", DEFAULT_LOGIN_PATH)
            me_path = me_path or config.get("auth.me_path", DEFAULT_ME_PATH)
            if expires_in_mins is None:
                expires_in_mins = config.get("auth.expires_in_mins", None)
        self.login_path = login_path or DEFAULT_LOGIN_PATH
        self.me_path = me_path or DEFAULT_ME_PATH
        self.expires_in_mins = int(expires_in_mins) if expires_in_mins else None
        self._current_user: Optional[User] = None

    @property
    def current_user(self) -> Optional[User]:
        """Cached session record (as returned by login)."""
        return self._current_user

    async def login(self, credentials: CredentialsLike) -> User:
        """
        Log in and authenticate the client context.

        Args:
            credentials: AuthCredentials or a mapping with username/password

        Returns:
            The session User, carrying the resolved token

        Raises:
            AuthenticationFailed: Login endpoint returned a non-2xx status
        """
        creds = AuthCredentials.coerce(credentials)
        self._current_user = None

        await self.api_client.create_context()

        payload = creds.to_payload()
        if self.expires_in_mins:
            payload["expiresInMins"] = self.expires_in_mins

        with allure.step(f"Login as {creds.username}"):
            response = await self.api_client.post(self.login_path, payload)

        if not response.success:
            logger.warning(
                f"Login failed for {creds.username}: {response.status_code}"
            )
            raise AuthenticationFailed(response.status_code, response.message())

        body = response.body if isinstance(response.body, Mapping) else {}
        token = body.get("accessToken") or body.get("token")
        user = User.from_payload({**body, "token": token})
        self._current_user = user

        if token:
            await self.api_client.create_context(token)
        else:
            logger.warning(f"Login for {creds.username} returned no token")

        logger.info(f"Logged in as {user.username} (id={user.id})")
        return user

    async def get_current_user(self) -> Union[User, Any]:
        """
        Fetch the current user's profile through the authenticated context.

        This is a fresh request, not the cached session record. A JSON object
        becomes a User; any other parsed body is returned unchanged.

        Raises:
            NoAuthenticatedUser: Not logged in, or the session has no token
            ProfileFetchFailed: Profile endpoint returned a non-2xx status
        """
        if self._current_user is None or not self._current_user.token:
            raise NoAuthenticatedUser()

        response = await self.api_client.get(self.me_path)
        if not response.success:
            raise ProfileFetchFailed(response.status_code, response.message())

        if not isinstance(response.body, Mapping):
            logger.warning(f"Profile body is not an object: {type(response.body).__name__}")
            return response.body
        return User.from_payload(response.body)

    async def logout(self) -> None:
        """Forget the session and dispose the client context. Idempotent."""
        if self._current_user is not None:
            logger.info(f"Logging out {self._current_user.username}")
        self._current_user = None
        await self.api_client.dispose()

    async def switch_user(self, credentials: CredentialsLike) -> User:
        """Log out the current session, then log in with other credentials."""
        await self.logout()
        return await self.login(credentials)

    def get_current_user_token(self) -> Optional[str]:
        if self._current_user is None:
            return None
        return self._current_user.token or None

    def is_authenticated(self) -> bool:
        return self._current_user is not None

    def __repr__(self) -> str:
        who = self._current_user.username if self._current_user else None
        return f"<AuthManager user={who!r} client={self.api_client!r}>"


# Pre-configured managers for the public practice APIs
dummyjson_auth = AuthManager(dummyjson_client)
reqres_auth = AuthManager(reqres_client)

# Users seeded in the DummyJSON database
TEST_USERS = {
    "emily": AuthCredentials(username="emilys", password="emilyspass"),
    "michael": AuthCredentials(username="michaelw", password="michaelwpass"),
    "sophia": AuthCredentials(username="sophiab", password="sophiabpass"),
    "james": AuthCredentials(username="jamesd", password="jamesdpass"),
}


__all__ = [
    "AuthError",
    "AuthManager",
    "AuthenticationFailed",
    "NoAuthenticatedUser",
    "ProfileFetchFailed",
    "TEST_USERS",
    "dummyjson_auth",
    "reqres_auth",
]
