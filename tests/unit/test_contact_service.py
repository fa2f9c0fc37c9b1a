"""
Unit tests for the contact form relay.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest
from prometheus_client import CollectorRegistry

from silent_money.config import Settings
from silent_money.exceptions import ExternalServiceError
from silent_money.models.community import ContactRequest
from silent_money.services.contact_service import ContactService
from shared.metrics import PlatformMetrics

RELAY_URL = "https://relay.example/f/abc"


def fake_session(status: int, text: str = ""):
    """aiohttp.ClientSession stand-in answering one POST."""
    resp = MagicMock(status=status)
    resp.text = AsyncMock(return_value=text)

    post_ctx = MagicMock()
    post_ctx.__aenter__ = AsyncMock(return_value=resp)
    post_ctx.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    session.post = MagicMock(return_value=post_ctx)

    session_ctx = MagicMock()
    session_ctx.__aenter__ = AsyncMock(return_value=session)
    session_ctx.__aexit__ = AsyncMock(return_value=False)
    return session_ctx, session


@pytest.fixture
def registry():
    return CollectorRegistry()


@pytest.fixture
def service(registry):
    return ContactService(
        settings=Settings(contact_relay_url=RELAY_URL),
        metrics=PlatformMetrics(registry=registry),
    )


@pytest.fixture
def message():
    return ContactRequest(
        name="Asha",
        email="asha@example.com",
        subject="Partnership",
        message="I would like to list my franchise.",
    )


class TestContactService:
    """Test relay requests and failure mapping."""

    @pytest.mark.asyncio
    async def test_message_posted_as_json(self, service, message, registry):
        session_ctx, session = fake_session(200, '{"ok": true}')

        with patch("silent_money.services.contact_service.aiohttp.ClientSession", return_value=session_ctx):
            accepted = await service.send_contact_message(message)

        url = session.post.call_args.args[0]
        payload = session.post.call_args.kwargs["json"]
        assert url == RELAY_URL
        assert payload == {
            "name": "Asha",
            "email": "asha@example.com",
            "_subject": "Partnership",
            "message": "I would like to list my franchise.",
        }
        assert accepted.relay == {"ok": True}
        assert registry.get_sample_value("platform_contact_relay_total", {"outcome": "delivered"}) == 1.0

    @pytest.mark.asyncio
    async def test_non_dict_answer_is_wrapped(self, service, message):
        session_ctx, _ = fake_session(200, '"queued"')

        with patch("silent_money.services.contact_service.aiohttp.ClientSession", return_value=session_ctx):
            accepted = await service.send_contact_message(message)

        assert accepted.relay == {"result": "queued"}

    @pytest.mark.asyncio
    async def test_rejection_raises_external_error(self, service, message, registry):
        session_ctx, _ = fake_session(500, "relay error")

        with patch("silent_money.services.contact_service.aiohttp.ClientSession", return_value=session_ctx):
            with pytest.raises(ExternalServiceError) as exc_info:
                await service.send_contact_message(message)

        assert exc_info.value.status_code == 502
        assert registry.get_sample_value("platform_contact_relay_total", {"outcome": "rejected"}) == 1.0

    @pytest.mark.asyncio
    async def test_transport_failure_raises_external_error(self, service, message, registry):
        with patch(
            "silent_money.services.contact_service.aiohttp.ClientSession",
            side_effect=aiohttp.ClientConnectionError("connection refused"),
        ):
            with pytest.raises(ExternalServiceError):
                await service.send_contact_message(message)

        assert registry.get_sample_value("platform_contact_relay_total", {"outcome": "error"}) == 1.0

    @pytest.mark.asyncio
    async def test_relay_timeout_raises_external_error(self, service, message, registry):
        session_ctx, session = fake_session(200)
        session.post.return_value.__aenter__ = AsyncMock(side_effect=asyncio.TimeoutError())

        with patch("silent_money.services.contact_service.aiohttp.ClientSession", return_value=session_ctx):
            with pytest.raises(ExternalServiceError) as exc_info:
                await service.send_contact_message(message)

        assert exc_info.value.status_code == 502
        assert registry.get_sample_value("platform_contact_relay_total", {"outcome": "error"}) == 1.0

    @pytest.mark.asyncio
    async def test_html_answer_counts_as_delivered(self, service, message, registry):
        session_ctx, _ = fake_session(200, "<html><body>Thanks!</body></html>")

        with patch("silent_money.services.contact_service.aiohttp.ClientSession", return_value=session_ctx):
            accepted = await service.send_contact_message(message)

        assert accepted.relay == {"result": "<html><body>Thanks!</body></html>"}
        assert registry.get_sample_value("platform_contact_relay_total", {"outcome": "delivered"}) == 1.0

    @pytest.mark.asyncio
    async def test_password_reset_payload(self, service):
        with patch.object(service, "_post", new=AsyncMock(return_value={})) as post:
            await service.send_password_reset("asha@example.com", "https://x/reset-password?token=t")

        payload = post.await_args.args[0]
        assert payload["email"] == "asha@example.com"
        assert payload["_subject"] == "Reset your Silent Money password"
        assert "https://x/reset-password?token=t" in payload["message"]


class TestContactRequest:
    """Test contact form validation."""

    def test_default_subject(self):
        request = ContactRequest(name="Asha", email="asha@example.com", message="Hello there, team!")

        assert request.subject == "General enquiry"

    def test_short_message_rejected(self):
        with pytest.raises(ValueError):
            ContactRequest(name="Asha", email="asha@example.com", message="hi")
