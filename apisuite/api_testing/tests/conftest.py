"""
================================================================================
API Testing Pytest Configuration
================================================================================

Shared fixtures for tests that run against the live API (DummyJSON by
default; override with API_BASE_URL).

Fixtures:
    - config: Configuration loader instance
    - api_client: ApiClient bound to api.base_url (disposed after the test)
    - auth: AuthManager on top of api_client (logged out after the test)
    - test_data: Process-wide TestDataManager shared by all tests in the run
    - unique_id: Identifier for test isolation

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import uuid
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from loguru import logger

from ..framework import ApiClient, AuthManager, ConfigLoader, TestDataManager


# =============================================================================
# Session-Scoped Fixtures (Shared across all tests)
# =============================================================================

@pytest.fixture(scope="session")
def config() -> ConfigLoader:
    """
    Provide configuration loader instance.

    Session-scoped to ensure configuration is loaded only once.
    """
    return ConfigLoader()


@pytest.fixture(scope="session")
def test_data(config: ConfigLoader) -> TestDataManager:
    """
    Provide the run-wide scratch store.

    Values written by one test are visible to later ones; namespace keys
    (or use the set_user/set_token helpers) to avoid collisions.
    """
    return TestDataManager.instance(config)


# =============================================================================
# Function-Scoped Fixtures (Fresh for each test)
# =============================================================================

@pytest_asyncio.fixture
async def api_client(config: ConfigLoader) -> AsyncGenerator[ApiClient, None]:
    """
    Provide an ApiClient with an open, anonymous context.

    Usage:
        async def test_example(api_client):
            envelope = await api_client.get("/products/1")
            assert envelope.success
    """
    client = ApiClient.from_config(config)
    await client.create_context()
    yield client
    await client.dispose()


@pytest_asyncio.fixture
async def auth(api_client: ApiClient, config: ConfigLoader) -> AsyncGenerator[AuthManager, None]:
    """Provide an AuthManager; any session is logged out after the test."""
    manager = AuthManager(api_client, config=config)
    yield manager
    await manager.logout()


@pytest.fixture
def unique_id() -> str:
    """Generate unique identifier for test isolation."""
    return f"autotest_{uuid.uuid4().hex[:8]}"


# =============================================================================
# Cleanup Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def cleanup_products(api_client: ApiClient):
    """
    Track created product IDs and delete them after the test.

    DummyJSON only simulates writes, so deletes of simulated IDs may 404;
    failures are logged, not raised.
    """
    created_ids = []
    yield created_ids

    for product_id in reversed(created_ids):
        if not api_client.has_context:
            await api_client.create_context()
        envelope = await api_client.delete(f"/products/{product_id}")
        if envelope.success:
            logger.debug(f"Cleaned up product: {product_id}")
        else:
            logger.warning(
                f"Failed to cleanup product {product_id}: {envelope.status_code}"
            )


# =============================================================================
# Allure Reporting Hooks
# =============================================================================

def pytest_exception_interact(node, call, report):
    """Attach additional info on test failure."""
    import allure

    if report.failed:
        allure.attach(
            str(call.excinfo.value),
            name="Error Details",
            attachment_type=allure.attachment_type.TEXT
        )
