"""
Unit tests for request dependencies.

Tests cover:
- Optional authentication on public pages
- Connection pool sizing from settings
"""

from unittest.mock import AsyncMock, MagicMock, patch

import asyncpg
import pytest
from fastapi.security import HTTPAuthorizationCredentials

from silent_money import dependencies
from silent_money.config import Settings
from silent_money.dependencies import get_optional_user, init_db_pool
from silent_money.exceptions import AuthenticationError
from tests.factories import make_user


def bearer(token="test-token"):
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


# ============================================================================
# OPTIONAL AUTHENTICATION
# ============================================================================


class TestOptionalUser:
    """Test the caller lookup used by public pages."""

    @pytest.mark.asyncio
    async def test_no_credentials(self):
        assert await get_optional_user(credentials=None, auth_service=MagicMock()) is None

    @pytest.mark.asyncio
    async def test_signed_in_viewer(self):
        user = make_user()
        auth = MagicMock(get_current_user=AsyncMock(return_value=user))

        assert await get_optional_user(credentials=bearer(), auth_service=auth) is user

    @pytest.mark.asyncio
    async def test_invalid_token_is_anonymous(self):
        auth = MagicMock(get_current_user=AsyncMock(side_effect=AuthenticationError("Invalid authentication token")))

        assert await get_optional_user(credentials=bearer(), auth_service=auth) is None

    @pytest.mark.asyncio
    async def test_banned_viewer_is_anonymous(self):
        auth = MagicMock(get_current_user=AsyncMock(return_value=make_user(is_banned=True)))

        assert await get_optional_user(credentials=bearer(), auth_service=auth) is None

    @pytest.mark.asyncio
    async def test_database_outage_propagates(self):
        auth = MagicMock(get_current_user=AsyncMock(side_effect=asyncpg.PostgresConnectionError("down")))

        with pytest.raises(asyncpg.PostgresConnectionError):
            await get_optional_user(credentials=bearer(), auth_service=auth)


# ============================================================================
# CONNECTION POOL
# ============================================================================


class TestInitDbPool:
    """Test pool sizing."""

    @pytest.mark.asyncio
    async def test_overflow_extends_max_size(self, monkeypatch):
        monkeypatch.setattr(dependencies, "_pool", None)
        settings = Settings(database_pool_size=4, database_max_overflow=6)
        create_pool = AsyncMock(return_value=MagicMock())

        with patch.object(dependencies, "get_settings", return_value=settings), \
                patch.object(dependencies.asyncpg, "create_pool", create_pool):
            await init_db_pool()

        kwargs = create_pool.await_args.kwargs
        assert kwargs["min_size"] == 2
        assert kwargs["max_size"] == 10
