"""Error classification for connection recovery."""

from typing import Any, Mapping, Optional, Union
from pydantic import ValidationError

from flint.models.directive import RecoveryDirective, ToastMessage
from flint.models.error import ApiError, ErrorCode, ErrorResponse, ProviderAPIError

ClassifiableError = Union[BaseException, ErrorResponse, Mapping[str, Any]]

NETWORK_RETRY_DELAY_MS = 3000
RATE_LIMIT_RETRY_DELAY_MS = 5000
UNKNOWN_RETRY_DELAY_MS = 3000


class ErrorClassifier:
    """Classify provider failures into recovery directives."""

    NETWORK_MESSAGE = "Network error. Please check your connection and try again."
    FALLBACK_MESSAGE = "Something went wrong. Please try again."

    MESSAGES = {
        ErrorCode.SNAPTRADE_NOT_REGISTERED: "Account setup required. Please connect your brokerage account.",
        ErrorCode.SNAPTRADE_USER_MISMATCH: "Account mismatch detected. Please reconnect your brokerage account.",
        ErrorCode.SIGNATURE_INVALID: "Authentication expired. Please reconnect your brokerage account.",
        ErrorCode.RATE_LIMITED: "Please try again in a moment",
        ErrorCode.CONNECTION_DISABLED: "Connection disabled. Please reconnect your brokerage account.",
    }

    @classmethod
    def classify(cls, error: ClassifiableError) -> RecoveryDirective:
        """Classify an error into a recovery directive.

        Never raises: every input maps to a directive.

        Args:
            error: Structured error response, provider exception, raw
                provider JSON, or any other (transport) exception

        Returns:
            RecoveryDirective for the caller to act on
        """
        response = cls._as_response(error)
        if response is None:
            return RecoveryDirective.retry(cls.NETWORK_MESSAGE, NETWORK_RETRY_DELAY_MS)

        code = response.error.code
        if code == ErrorCode.SNAPTRADE_NOT_REGISTERED:
            return RecoveryDirective.register(cls.MESSAGES[code])
        elif code == ErrorCode.SNAPTRADE_USER_MISMATCH:
            return RecoveryDirective.register(cls.MESSAGES[code])
        elif code == ErrorCode.SIGNATURE_INVALID:
            return RecoveryDirective.reconnect(cls.MESSAGES[code])
        elif code == ErrorCode.RATE_LIMITED:
            return RecoveryDirective.backoff(cls.MESSAGES[code], RATE_LIMIT_RETRY_DELAY_MS)
        elif code == ErrorCode.CONNECTION_DISABLED:
            return RecoveryDirective.reconnect(cls.MESSAGES[code])
        else:
            # UNKNOWN, and anything added to ErrorCode without a branch here
            return RecoveryDirective.retry(
                response.error.message or cls.FALLBACK_MESSAGE,
                UNKNOWN_RETRY_DELAY_MS,
            )

    @classmethod
    def _as_response(cls, error: ClassifiableError) -> Optional[ErrorResponse]:
        """Extract the structured response, or None for transport failures."""
        if isinstance(error, ErrorResponse):
            return error
        if isinstance(error, ProviderAPIError):
            return error.response
        if isinstance(error, BaseException):
            return None
        if isinstance(error, Mapping):
            try:
                return ErrorResponse.model_validate(error)
            except ValidationError:
                return ErrorResponse(error=ApiError(code=ErrorCode.UNKNOWN))
        return ErrorResponse(error=ApiError(code=ErrorCode.UNKNOWN))

    @classmethod
    def error_code(cls, error: ClassifiableError) -> Optional[ErrorCode]:
        """Get the error code, or None for transport failures."""
        response = cls._as_response(error)
        return response.error.code if response is not None else None

    @classmethod
    def is_rate_limited(cls, error: ClassifiableError) -> bool:
        """Check if an error is provider rate limiting.

        Only structured errors count. A transport failure is never treated as
        rate limiting, even if its text mentions it.
        """
        if not isinstance(error, (ErrorResponse, ProviderAPIError)):
            return False
        return cls.error_code(error) == ErrorCode.RATE_LIMITED

    @classmethod
    def toast_message(cls, error: ClassifiableError) -> ToastMessage:
        """Get a short notification for an error.

        Args:
            error: Error to describe

        Returns:
            Toast title, description and variant
        """
        directive = cls.classify(error)

        if directive.should_register:
            return ToastMessage(
                title="Account Setup Required",
                description=directive.user_message,
                variant="default",
            )
        if directive.should_reconnect:
            return ToastMessage(
                title="Reconnection Required",
                description=directive.user_message,
                variant="default",
            )
        return ToastMessage(
            title="Temporary Issue",
            description=directive.user_message,
            variant="destructive",
        )
