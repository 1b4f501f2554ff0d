"""Error models shared with the account-provider API layer."""

from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ErrorCode(str, Enum):
    """Known provider error codes."""

    SNAPTRADE_NOT_REGISTERED = "SNAPTRADE_NOT_REGISTERED"  # User never registered with SnapTrade
    SNAPTRADE_USER_MISMATCH = "SNAPTRADE_USER_MISMATCH"  # Stored user/secret pair is stale
    SIGNATURE_INVALID = "SIGNATURE_INVALID"  # Request signature rejected
    RATE_LIMITED = "RATE_LIMITED"  # Provider throttling
    CONNECTION_DISABLED = "CONNECTION_DISABLED"  # Brokerage authorization disabled
    UNKNOWN = "UNKNOWN"  # Anything else

    @classmethod
    def parse(cls, value: Any) -> "ErrorCode":
        """Parse a raw code, folding unrecognized values into UNKNOWN."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value))
        except ValueError:
            return cls.UNKNOWN


class ApiError(BaseModel):
    """Structured error body returned by the provider API layer."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    code: ErrorCode = Field(default=ErrorCode.UNKNOWN, description="Error code")
    message: str = Field(default="", description="Human-friendly message")
    request_id: Optional[str] = Field(
        default=None, alias="requestId", description="X-Request-ID for support correlation"
    )

    @field_validator("code", mode="before")
    @classmethod
    def _fold_unknown_codes(cls, value: Any) -> ErrorCode:
        return ErrorCode.parse(value)

    @field_validator("message", mode="before")
    @classmethod
    def _none_message(cls, value: Any) -> str:
        return "" if value is None else value


class ErrorResponse(BaseModel):
    """Error envelope: ``{"error": {"code", "message"}, "httpStatus"}``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    error: ApiError = Field(description="Error details")
    http_status: Optional[int] = Field(
        default=None, alias="httpStatus", description="HTTP status of the failed call"
    )

    @property
    def code(self) -> ErrorCode:
        return self.error.code

    @property
    def message(self) -> str:
        return self.error.message


class FlintError(Exception):
    """Base class for Flint errors."""


class ProviderAPIError(FlintError):
    """A provider call failed with a structured error response."""

    def __init__(self, response: ErrorResponse):
        super().__init__(response.error.message or response.error.code.value)
        self.response = response

    @classmethod
    def from_code(
        cls,
        code: ErrorCode | str,
        message: str = "",
        http_status: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> "ProviderAPIError":
        return cls(
            ErrorResponse(
                error=ApiError(code=code, message=message, request_id=request_id),
                http_status=http_status,
            )
        )

    @property
    def code(self) -> ErrorCode:
        return self.response.error.code

    @property
    def http_status(self) -> Optional[int]:
        return self.response.http_status

    @property
    def request_id(self) -> Optional[str]:
        return self.response.error.request_id


class PortalUrlError(FlintError):
    """Could not obtain a reconnect/registration portal URL."""

    def __init__(self, message: str, account_id: Optional[str] = None):
        super().__init__(message)
        self.account_id = account_id
