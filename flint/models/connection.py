"""Connection records owned by the account-sync subsystem."""

from typing import Optional
from urllib.parse import urlencode
from pydantic import BaseModel, ConfigDict, Field

DISCONNECTED_STATUS = "DISCONNECTED"
RECONNECT_PATH = "/snaptrade/auth"


class ConnectionRecord(BaseModel):
    """A linked brokerage or bank connection (read-only here)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(description="Connection ID")
    name: str = Field(description="Display name of the institution")
    disabled: bool = Field(default=False, description="Provider disabled the authorization")
    needs_reconnect: bool = Field(
        default=False, alias="needsReconnect", description="Sync flagged the connection as broken"
    )
    status: Optional[str] = Field(default=None, description="Raw provider status")


class ConnectionStatus(BaseModel):
    """Health summary for a single connection."""

    model_config = ConfigDict(frozen=True)

    is_disabled: bool
    needs_reconnect: bool
    reconnect_url: Optional[str] = None


def check_connection_status(connection: ConnectionRecord) -> ConnectionStatus:
    """Work out whether a connection must be reconnected.

    Args:
        connection: Connection to inspect

    Returns:
        Connection status, with a reconnect URL when one is needed
    """
    is_disabled = connection.disabled
    needs_reconnect = (
        is_disabled
        or connection.needs_reconnect
        or (connection.status or "").upper() == DISCONNECTED_STATUS
    )

    reconnect_url = None
    if needs_reconnect and connection.id:
        reconnect_url = f"{RECONNECT_PATH}?{urlencode({'reconnect': connection.id})}"

    return ConnectionStatus(
        is_disabled=is_disabled,
        needs_reconnect=needs_reconnect,
        reconnect_url=reconnect_url,
    )
