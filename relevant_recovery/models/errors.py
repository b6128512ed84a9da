"""Domain error codes for site-side rules."""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    INVALID_EVENT = "INVALID_EVENT"
    INVALID_STEP = "INVALID_STEP"
    INVALID_OPTION = "INVALID_OPTION"


@dataclass(eq=False)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class InvalidEventError(DomainError):
    """Raised when an event's cost and call-to-action disagree."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_EVENT, message=message)


class InvalidStepError(DomainError):
    """Raised when a wizard transition skips or leaves the step range."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_STEP, message=message)


class InvalidOptionError(DomainError):
    """Raised when a donation option does not fit its type's groups."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_OPTION, message=message)
