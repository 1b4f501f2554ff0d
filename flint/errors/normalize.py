"""Normalize raw provider failures into the known error codes."""

import logging
from typing import Any, Mapping, Optional

import httpx

from flint.models.error import ApiError, ErrorCode, ErrorResponse, ProviderAPIError

logger = logging.getLogger(__name__)

REQUEST_ID_HEADERS = ("x-request-id", "x-snaptrade-request-id")

# Checked in order; the first matching rule wins.
RULES: list[tuple[ErrorCode, set[int], set[str], list[str]]] = [
    (
        ErrorCode.SNAPTRADE_NOT_REGISTERED,
        {428},
        {"USER_NOT_REGISTERED", "SNAPTRADE_NOT_REGISTERED"},
        ["user not registered", "register user"],
    ),
    (
        ErrorCode.SNAPTRADE_USER_MISMATCH,
        {409},
        {"USER_MISMATCH", "SNAPTRADE_USER_MISMATCH"},
        ["user mismatch", "different user"],
    ),
    (
        ErrorCode.SIGNATURE_INVALID,
        {401},
        {"1076", "SIGNATURE_INVALID", "INVALID_SIGNATURE"},
        ["signature", "unable to verify"],
    ),
    (
        ErrorCode.RATE_LIMITED,
        {429},
        {"RATE_LIMITED", "TOO_MANY_REQUESTS"},
        ["rate limit", "too many requests"],
    ),
    (
        ErrorCode.CONNECTION_DISABLED,
        set(),
        {"BROKERAGE_AUTHORIZATION_DISABLED", "CONNECTION_DISABLED", "AUTHORIZATION_DISABLED"},
        ["authorization disabled", "connection disabled"],
    ),
]

MESSAGES = {
    ErrorCode.SNAPTRADE_NOT_REGISTERED: "Please finish your SnapTrade registration to continue",
    ErrorCode.SNAPTRADE_USER_MISMATCH: "Your SnapTrade connection needs to be reset. Please reconnect your account",
    ErrorCode.SIGNATURE_INVALID: "Authentication configuration error. Please contact support",
    ErrorCode.RATE_LIMITED: "Please try again in a moment. Too many requests",
    ErrorCode.CONNECTION_DISABLED: "Your brokerage connection has been disabled. Please reconnect",
}

SERVER_ERROR_MESSAGE = "Server error occurred. Please try again later"
CLIENT_ERROR_MESSAGE = "Request error. Please check your input"


def extract_request_id(headers: Optional[Mapping[str, str]]) -> Optional[str]:
    """Find the provider request ID for support correlation."""
    if not headers:
        return None
    lowered = {k.lower(): v for k, v in headers.items()}
    for name in REQUEST_ID_HEADERS:
        if lowered.get(name):
            return lowered[name]
    return None


def _fallback_message(status: Optional[int], message: Optional[str]) -> str:
    """User-facing message for errors outside the known codes."""
    if status is not None and status >= 500:
        return SERVER_ERROR_MESSAGE
    if status is not None and 400 <= status < 500:
        return message or CLIENT_ERROR_MESSAGE
    return message or "Unknown error"


def normalize_provider_error(
    status: Optional[int],
    code: Any = None,
    message: Optional[str] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> ErrorResponse:
    """Map a raw provider failure onto a known error code.

    Args:
        status: HTTP status of the failed call
        code: Provider-specific error code, if any
        message: Provider error message, if any
        headers: Response headers

    Returns:
        ErrorResponse with a known code and a user-facing message
    """
    raw_code = str(code) if code is not None else ""
    raw_message = message or "Unknown error"
    message_lower = raw_message.lower()
    request_id = extract_request_id(headers)

    normalized = ErrorCode.UNKNOWN
    for error_code, statuses, codes, phrases in RULES:
        if (
            status in statuses
            or raw_code in codes
            or any(phrase in message_lower for phrase in phrases)
        ):
            normalized = error_code
            break

    logger.debug(
        f"Normalized provider error status={status} code={raw_code or '-'} "
        f"-> {normalized.value} (request_id={request_id})"
    )

    return ErrorResponse(
        error=ApiError(
            code=normalized,
            message=MESSAGES.get(normalized) or _fallback_message(status, message),
            request_id=request_id,
        ),
        http_status=status,
    )


def from_http_error(exc: httpx.HTTPStatusError) -> ProviderAPIError:
    """Convert an httpx status error into a ProviderAPIError.

    The body may be ``{"code", "message"}`` or ``{"error": {"code", "message"}}``.
    """
    response = exc.response
    code: Any = None
    message: Optional[str] = None

    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        details = body.get("error") if isinstance(body.get("error"), dict) else body
        code = details.get("code")
        message = details.get("message")
    elif response.text:
        message = response.text[:500]

    return ProviderAPIError(
        normalize_provider_error(
            status=response.status_code,
            code=code,
            message=message,
            headers=response.headers,
        )
    )
