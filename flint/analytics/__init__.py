"""Connection health analytics."""

from .tracker import ConnectionHealthEvent, EventTracker

__all__ = ["ConnectionHealthEvent", "EventTracker"]
