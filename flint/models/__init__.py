"""Data models for Flint."""

from flint.models.error import (
    ErrorCode,
    ApiError,
    ErrorResponse,
    FlintError,
    ProviderAPIError,
    PortalUrlError,
)
from flint.models.directive import RecoveryAction, RecoveryDirective, ToastMessage
from flint.models.connection import ConnectionRecord, ConnectionStatus, check_connection_status
from flint.models.config import FlintConfig, RecoveryConfig, PortalConfig

__all__ = [
    "ErrorCode",
    "ApiError",
    "ErrorResponse",
    "FlintError",
    "ProviderAPIError",
    "PortalUrlError",
    "RecoveryAction",
    "RecoveryDirective",
    "ToastMessage",
    "ConnectionRecord",
    "ConnectionStatus",
    "check_connection_status",
    "FlintConfig",
    "RecoveryConfig",
    "PortalConfig",
]
