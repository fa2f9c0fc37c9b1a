"""
Shared pytest fixtures.

Settings are read once and cached, so the test environment is exported
before any application module is imported.
"""

import os

os.environ.setdefault("SILENT_MONEY_ENVIRONMENT", "development")
os.environ.setdefault("SILENT_MONEY_JWT_SECRET_KEY", "test-secret-key-do-not-use-in-production")
os.environ.setdefault("SILENT_MONEY_PASSWORD_BCRYPT_ROUNDS", "4")
os.environ.setdefault("SILENT_MONEY_RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("SILENT_MONEY_TRACING_ENABLED", "false")
os.environ.setdefault("SILENT_MONEY_LOG_FORMAT", "text")
os.environ.setdefault("SILENT_MONEY_LOG_LEVEL", "WARNING")

from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
from prometheus_client import CollectorRegistry  # noqa: E402

from silent_money.models.auth import CurrentUser, Role  # noqa: E402
from silent_money.services.realtime import ChangeFeed  # noqa: E402
from shared.metrics import PlatformMetrics  # noqa: E402
from tests.factories import make_user  # noqa: E402


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def member() -> CurrentUser:
    return make_user(Role.USER)


@pytest.fixture
def admin_user() -> CurrentUser:
    return make_user(Role.ADMIN)


@pytest.fixture
def feed() -> ChangeFeed:
    return ChangeFeed(queue_size=10)


@pytest.fixture
def metrics() -> PlatformMetrics:
    """Metrics on a private registry so tests never collide on names."""
    return PlatformMetrics(registry=CollectorRegistry())


@pytest.fixture
def notifications() -> MagicMock:
    service = MagicMock()
    service.notify = AsyncMock()
    return service


@pytest.fixture
def activity() -> MagicMock:
    recorder = MagicMock()
    recorder.log_admin_action = AsyncMock()
    recorder.log_asset_event = AsyncMock()
    return recorder
