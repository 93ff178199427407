"""Operational alerts posted to a chat webhook."""

from __future__ import annotations

import logging

import httpx

from wikiauth.config import Settings

logger = logging.getLogger(__name__)

# Discord rejects webhook content longer than this
_MAX_CONTENT = 2000


class AlertService:
    """
    Posts operational messages to a Discord-compatible webhook.

    Delivery is best effort: failures are logged and never raised, so an
    alerting outage cannot take down the operation being reported.
    """

    def __init__(self, settings: Settings) -> None:
        self._webhook_url = settings.ALERT_WEBHOOK_URL
        self._environment = settings.ENVIRONMENT

    async def send(self, message: str) -> None:
        if not self._webhook_url:
            logger.info("alert: %s", message)
            return

        content = f"[{self._environment}] {message}"[:_MAX_CONTENT]
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                response = await client.post(self._webhook_url, json={"content": content})
                response.raise_for_status()
        except httpx.HTTPError:
            logger.warning("Failed to deliver alert: %s", message)

    async def report(self, context: str, exc: BaseException) -> None:
        """Send an alert for a failure, naming where it happened."""
        await self.send(f"{context}: {type(exc).__name__}: {exc}")
