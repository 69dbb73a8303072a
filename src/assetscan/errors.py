"""Error taxonomy shared by every mutation entry point.

Scan outcomes such as "not found" or "already registered" are results, not
exceptions. ``AssetScanError`` is reserved for conditions the caller has to
act on: malformed input, malformed imports, and writes that could not be made
durable.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_IMPORT_SHAPE = "INVALID_IMPORT_SHAPE"
    NOT_FOUND = "NOT_FOUND"
    NOT_REGISTERED = "NOT_REGISTERED"
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"


class AssetScanError(Exception):
    """Structured error carrying a machine-readable code."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: str = "",
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.recoverable = recoverable

    def to_dict(self) -> dict[str, object]:
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "suggestion": self.suggestion,
                "recoverable": self.recoverable,
            }
        }
