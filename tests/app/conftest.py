from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from birthdays.app.app import app
from birthdays.app.dependencies import sync_services


@pytest.fixture
def services() -> MagicMock:
    """Sync services with every async entry point mocked."""
    services = MagicMock()
    services.reconciler.reconcile = AsyncMock(return_value=None)
    services.bulk.process_chunk = AsyncMock()
    services.sweeper.run_once = AsyncMock()
    services.cleanup.cleanup_orphans = AsyncMock()
    services.cleanup.remove_sync = AsyncMock()
    services.write_handler.on_write = AsyncMock(return_value=None)
    return services


@pytest.fixture
def client(services: MagicMock):
    app.dependency_overrides[sync_services] = lambda: services
    yield TestClient(app, headers={"X-User-Id": "owner_1"})
    app.dependency_overrides.clear()
