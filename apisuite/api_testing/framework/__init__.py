"""
================================================================================
API Testing Framework
================================================================================

Client-side harness components for exercising a remote HTTP API.

Modules:
    - api_client: Scoped async HTTP client with Allure logging
    - auth_manager: Login/session state on top of an ApiClient
    - test_data_manager: Keyed scratch store and identifier generators
    - config_loader: YAML configuration management
    - log_config: Loguru setup
    - models: Credentials, user record and response envelope types

Author: Automation Team
License: MIT
================================================================================
"""

from .api_client import (
    ApiClient,
    ApiClientError,
    ContextNotInitialized,
    RequestContext,
    dummyjson_client,
    reqres_client,
)
from .auth_manager import (
    TEST_USERS,
    AuthError,
    AuthManager,
    AuthenticationFailed,
    NoAuthenticatedUser,
    ProfileFetchFailed,
    dummyjson_auth,
    reqres_auth,
)
from .config_loader import ConfigLoader, ConfigurationError
from .log_config import init_logger
from .models import AuthCredentials, ResponseEnvelope, User
from .test_data_manager import MISSING, TestDataManager

__all__ = [
    "ApiClient",
    "ApiClientError",
    "AuthCredentials",
    "AuthError",
    "AuthManager",
    "AuthenticationFailed",
    "ConfigLoader",
    "ConfigurationError",
    "ContextNotInitialized",
    "MISSING",
    "NoAuthenticatedUser",
    "ProfileFetchFailed",
    "RequestContext",
    "ResponseEnvelope",
    "TEST_USERS",
    "TestDataManager",
    "User",
    "dummyjson_auth",
    "dummyjson_client",
    "init_logger",
    "reqres_auth",
    "reqres_client",
]
