"""Connection health event tracking."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional
import asyncio
import logging

logger = logging.getLogger(__name__)


class ConnectionHealthEvent(str, Enum):
    """Connection health events."""

    ACCOUNT_DISCONNECTED_SHOWN = "account_disconnected_shown"
    RECONNECT_CLICKED = "reconnect_clicked"
    RECONNECT_SUCCESS = "reconnect_success"
    RECONNECT_FAILED = "reconnect_failed"


class EventTracker:
    """Forwards connection health events to registered sinks."""

    def __init__(self):
        """Initialize event tracker."""
        self.sinks: list[Callable] = []

    def register(self, sink: Callable) -> None:
        """Register an event sink.

        Args:
            sink: Callback taking ``(event_name, properties)`` (can be sync or async)
        """
        self.sinks.append(sink)

    async def track(self, event: ConnectionHealthEvent | str, properties: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """Track an event.

        Args:
            event: Event to track
            properties: Event properties

        Returns:
            The properties sent to sinks, including the timestamp
        """
        name = event.value if isinstance(event, ConnectionHealthEvent) else event
        payload = {
            **(properties or {}),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        logger.debug(f"Analytics: {name} {payload}")

        for sink in self.sinks:
            try:
                if asyncio.iscoroutinefunction(sink):
                    await sink(name, payload)
                else:
                    sink(name, payload)
            except Exception as e:
                # Tracking is best effort and must not break recovery
                logger.warning(f"Analytics tracking failed for {name}: {e}")

        return payload

    async def track_account_disconnected_shown(self, account_id: str, provider: str) -> None:
        await self.track(
            ConnectionHealthEvent.ACCOUNT_DISCONNECTED_SHOWN,
            {"account_id": account_id, "provider": provider},
        )

    async def track_reconnect_clicked(self, account_id: Optional[str], provider: str) -> None:
        await self.track(
            ConnectionHealthEvent.RECONNECT_CLICKED,
            {"account_id": account_id, "provider": provider},
        )

    async def track_reconnect_success(self, account_id: Optional[str], provider: str) -> None:
        await self.track(
            ConnectionHealthEvent.RECONNECT_SUCCESS,
            {"account_id": account_id, "provider": provider},
        )

    async def track_reconnect_failed(self, account_id: Optional[str], provider: str, error: str) -> None:
        await self.track(
            ConnectionHealthEvent.RECONNECT_FAILED,
            {"account_id": account_id, "provider": provider, "error": error},
        )

    def clear(self) -> None:
        """Remove all sinks."""
        self.sinks = []
