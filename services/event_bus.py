"""Publish background-job events to the Inngest event API over HTTP."""

import logging
from typing import Any, Optional

import httpx

from config.exceptions import EventBusError
from config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

VIDEO_EXPORT_STARTED = "video/export.started"
VIDEO_EXPORT_CANCELLED = "video/export.cancelled"


class EventBus:
    """Thin async publisher.

    ``publish`` raises on any failure; ``publish_best_effort`` logs and
    returns False instead, for notifications that must never block the
    caller's own state change.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self._transport = transport

    async def publish(self, name: str, data: dict[str, Any]) -> None:
        key = self.settings.inngest_event_key
        if not key:
            raise EventBusError("Event bus is not configured (INNGEST_EVENT_KEY missing)", name)

        url = f"{self.settings.inngest_base_url.rstrip('/')}/e/{key}"
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.inngest_timeout, transport=self._transport,
            ) as client:
                response = await client.post(url, json={"name": name, "data": data})
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise EventBusError(f"Failed to publish {name}: {e}", name) from e

        logger.info("Published event %s", name)

    async def publish_best_effort(self, name: str, data: dict[str, Any]) -> bool:
        try:
            await self.publish(name, data)
        except EventBusError as e:
            logger.warning("Event %s not delivered: %s", name, e.message)
            return False
        return True
