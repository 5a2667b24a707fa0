"""Service errors carrying a status code."""

from __future__ import annotations

import enum


class ErrorCode(str, enum.Enum):
    """Status codes attached to service errors."""

    INVALID_ARGUMENT = "invalid_argument"
    UNAVAILABLE = "unavailable"


class SIPError(Exception):
    """An error with a status code."""

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return self.message


class NoConfigError(SIPError):
    """No configuration was provided."""

    def __init__(self, message: str = "missing config") -> None:
        super().__init__(ErrorCode.INVALID_ARGUMENT, message)


class UnavailableError(SIPError):
    """The service cannot take more work."""

    def __init__(self, message: str = "cpu exhausted") -> None:
        super().__init__(ErrorCode.UNAVAILABLE, message)


def could_not_parse_config(err: object) -> SIPError:
    """The error raised when a configuration document cannot be parsed."""
    return SIPError(ErrorCode.INVALID_ARGUMENT, f"could not parse config: {err}")