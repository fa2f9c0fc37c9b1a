"""
Contact form relay.

Messages from the public contact form (and password reset links) are
posted as JSON to an external form-to-e-mail endpoint with aiohttp.
"""

import asyncio
import json
from typing import Any, Dict, Optional

import aiohttp
import structlog

from silent_money.config import Settings, get_settings
from silent_money.exceptions import ExternalServiceError, SilentMoneyError
from silent_money.models.community import ContactAccepted, ContactRequest
from shared.metrics import PlatformMetrics
from shared.tracing import trace_function

logger = structlog.get_logger(__name__)

# aiohttp raises the builtin TimeoutError when ClientTimeout.total expires
RELAY_TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError)


class ContactService:
    """Relays messages to the configured form endpoint."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        metrics: Optional[PlatformMetrics] = None,
    ):
        self.settings = settings or get_settings()
        self.metrics = metrics

    def _record(self, outcome: str) -> None:
        if self.metrics:
            self.metrics.contact_relay.labels(outcome=outcome).inc()

    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        timeout = aiohttp.ClientTimeout(total=self.settings.contact_relay_timeout)
        try:
            async with aiohttp.ClientSession(headers={"Accept": "application/json"}) as session:
                async with session.post(
                    self.settings.contact_relay_url,
                    json=payload,
                    timeout=timeout,
                ) as resp:
                    body = await resp.text()
                    if resp.status < 200 or resp.status >= 300:
                        logger.error(
                            "contact_relay_rejected",
                            status=resp.status,
                            body=body[:200]
                        )
                        self._record("rejected")
                        raise ExternalServiceError(
                            "Message could not be delivered. Please try again later."
                        )
        except RELAY_TRANSPORT_ERRORS as e:
            logger.error("contact_relay_failed", error=str(e) or type(e).__name__)
            self._record("error")
            raise ExternalServiceError("Message could not be delivered. Please try again later.")

        self._record("delivered")
        # A 2xx answer means delivered even when the relay replies with HTML
        try:
            result = json.loads(body)
        except ValueError:
            result = body
        return result if isinstance(result, dict) else {"result": result}

    @trace_function("contact.send_message", expected=(SilentMoneyError,))
    async def send_contact_message(self, request: ContactRequest) -> ContactAccepted:
        """
        Relay a contact form submission.

        Raises:
            ExternalServiceError: On a non-2xx relay answer or transport failure
        """
        relay = await self._post({
            "name": request.name,
            "email": request.email,
            "_subject": request.subject,
            "message": request.message,
        })
        logger.info("contact_message_relayed", subject=request.subject)
        return ContactAccepted(relay=relay)

    async def send_password_reset(self, email: str, reset_link: str) -> None:
        """Relay a password reset link to the account holder."""
        await self._post({
            "email": email,
            "_subject": "Reset your Silent Money password",
            "message": f"Use this link to choose a new password: {reset_link}",
        })
        logger.info("password_reset_relayed")
