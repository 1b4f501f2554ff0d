"""HTTP client for the reconnect/registration portal endpoint."""

import logging
from typing import Optional

import httpx

from flint.errors.normalize import from_http_error
from flint.models.config import PortalConfig
from flint.models.error import PortalUrlError

logger = logging.getLogger(__name__)


class PortalClient:
    """Requests provider-hosted portal URLs from the account-linking API."""

    def __init__(self, config: Optional[PortalConfig] = None, http_client: Optional[httpx.AsyncClient] = None):
        self.config = config or PortalConfig()
        self.http_client = http_client
        self._owns_client = http_client is None

    async def connect(self) -> None:
        """Create HTTP client."""
        if self.http_client is None:
            self.http_client = httpx.AsyncClient(timeout=self.config.timeout)
            self._owns_client = True

    async def disconnect(self) -> None:
        """Close HTTP client if we created it."""
        if self.http_client and self._owns_client:
            await self.http_client.aclose()
            self.http_client = None

    async def __aenter__(self) -> "PortalClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.disconnect()

    async def get_portal_url(self, reconnect: Optional[str] = None) -> str:
        """Request a portal URL.

        Args:
            reconnect: Connection ID to repair, or None for a new registration

        Returns:
            Portal URL

        Raises:
            ProviderAPIError: If the endpoint answers with an error status
            PortalUrlError: If the response carries no portal URL
        """
        if not self.http_client:
            await self.connect()

        payload = {"reconnect": reconnect} if reconnect else {}
        logger.debug(f"Requesting portal URL from {self.config.url} (reconnect={reconnect})")

        response = await self.http_client.post(
            self.config.url,
            json=payload,
            headers=self.config.headers,
        )
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise from_http_error(e) from e

        try:
            data = response.json()
        except ValueError as e:
            raise PortalUrlError("Portal endpoint returned invalid JSON", reconnect) from e

        portal_url = data.get("portalUrl") if isinstance(data, dict) else None
        if not portal_url:
            raise PortalUrlError("Portal endpoint returned no portalUrl", reconnect)
        return portal_url
