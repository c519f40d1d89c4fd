"""Pytest configuration and fixtures."""

import pytest

from snet_sync.config import SyncConfig
from snet_sync.registry import SchemaRegistry
from tests.fixtures.mock_services import MockContentStore, MockLedger, MockRegistryStore


@pytest.fixture
def sync_config():
    """Sync configuration with the default policies."""
    return SyncConfig(sync_interval_seconds=3600)


@pytest.fixture
def registry():
    return SchemaRegistry()


@pytest.fixture
def mock_ledger():
    return MockLedger()


@pytest.fixture
def mock_content():
    return MockContentStore()


@pytest.fixture
def mock_store():
    return MockRegistryStore()
