"""Account-linking portal access."""

from .client import PortalClient

__all__ = ["PortalClient"]
