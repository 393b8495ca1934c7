"""
Typed outcome of a commit message generation.

Every backend returns a :class:`GenerationResult`: either a success
carrying the message text or a failure carrying an :class:`ErrorKind`
and a human-readable detail suitable for direct display.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional


class ErrorKind(enum.Enum):
    """Failure classification of a generation attempt."""

    EXECUTABLE_NOT_FOUND = "executable-not-found"
    SPAWN_ERROR = "spawn-error"
    TIMEOUT = "timeout"
    OUTPUT_READ_ERROR = "output-read-error"
    NON_ZERO_EXIT = "non-zero-exit"
    MALFORMED_RESPONSE = "malformed-response"
    NO_RESULT_IN_ARRAY = "no-result-in-array"
    MISSING_RESULT = "missing-result"
    REPORTED_ERROR = "reported-error"
    API_ERROR = "api-error"
    EMPTY_DIFF = "empty-diff"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class GenerationResult:
    """Success (``message``) or failure (``error`` and ``detail``)."""

    message: Optional[str] = None
    error: Optional[ErrorKind] = None
    detail: str = ""

    @classmethod
    def success(cls, message: str) -> "GenerationResult":
        return cls(message=message)

    @classmethod
    def failure(cls, error: ErrorKind, detail: str = "") -> "GenerationResult":
        return cls(error=error, detail=detail)

    @property
    def ok(self) -> bool:
        return self.error is None

    def describe(self) -> str:
        """Return the message on success, otherwise the failure detail."""
        if self.ok:
            return self.message or ""
        return self.detail or self.error.value
