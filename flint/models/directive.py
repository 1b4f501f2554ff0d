"""Recovery directive models."""

from enum import Enum
from typing import Any, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator


class RecoveryAction(str, Enum):
    """The one action a directive asks the caller to offer."""

    RETRY = "retry"
    BACKOFF = "backoff"
    RECONNECT = "reconnect"
    REGISTER = "register"


class RecoveryDirective(BaseModel):
    """What the caller should do about a failed provider call.

    The action is a single tag, so a directive can never ask for a retry and a
    reconnect at the same time. The boolean flags consumed by the dashboard are
    derived from it.
    """

    model_config = ConfigDict(frozen=True)

    action: RecoveryAction = Field(description="Recovery action to offer")
    user_message: str = Field(description="Human-readable explanation")
    retry_delay_ms: Optional[int] = Field(
        default=None, ge=0, description="Delay before retrying, in milliseconds"
    )

    @model_validator(mode="after")
    def _check_delay(self) -> "RecoveryDirective":
        if self.action == RecoveryAction.BACKOFF and self.retry_delay_ms is None:
            raise ValueError("backoff directives require retry_delay_ms")
        if not self.should_retry and self.retry_delay_ms is not None:
            raise ValueError(f"{self.action.value} directives cannot carry a retry delay")
        return self

    @classmethod
    def retry(cls, user_message: str, delay_ms: Optional[int] = None) -> "RecoveryDirective":
        return cls(action=RecoveryAction.RETRY, user_message=user_message, retry_delay_ms=delay_ms)

    @classmethod
    def backoff(cls, user_message: str, delay_ms: int) -> "RecoveryDirective":
        return cls(action=RecoveryAction.BACKOFF, user_message=user_message, retry_delay_ms=delay_ms)

    @classmethod
    def reconnect(cls, user_message: str) -> "RecoveryDirective":
        return cls(action=RecoveryAction.RECONNECT, user_message=user_message)

    @classmethod
    def register(cls, user_message: str) -> "RecoveryDirective":
        return cls(action=RecoveryAction.REGISTER, user_message=user_message)

    @property
    def should_retry(self) -> bool:
        return self.action in (RecoveryAction.RETRY, RecoveryAction.BACKOFF)

    @property
    def should_reconnect(self) -> bool:
        return self.action == RecoveryAction.RECONNECT

    @property
    def should_register(self) -> bool:
        return self.action == RecoveryAction.REGISTER

    @property
    def needs_portal(self) -> bool:
        """Whether acting on this directive requires the provider portal."""
        return self.should_reconnect or self.should_register

    def to_flags(self) -> dict[str, Any]:
        """Flag-shaped view used by the dashboard frontend."""
        flags: dict[str, Any] = {
            "shouldRetry": self.should_retry,
            "shouldReconnect": self.should_reconnect,
            "shouldRegister": self.should_register,
            "userMessage": self.user_message,
        }
        if self.retry_delay_ms is not None:
            flags["retryDelay"] = self.retry_delay_ms
        return flags


class ToastMessage(BaseModel):
    """Short notification derived from a directive."""

    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    variant: Literal["default", "destructive"] = "default"
