from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    ARCHIVE_FETCH_FAILED = "ARCHIVE_FETCH_FAILED"
    ARCHIVE_HTTP_ERROR = "ARCHIVE_HTTP_ERROR"
    ARCHIVE_INVALID = "ARCHIVE_INVALID"
    INVALID_INPUT = "INVALID_INPUT"


class DocIndexError(Exception):
    """Raised for expected failures of the fetch pipeline and tool handlers.

    Transport errors are recovered by the refresh logic (last known good data
    or an empty result). Archive-integrity and input errors propagate to the
    MCP layer, which serialises them with ``to_dict``.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: str,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.recoverable = recoverable

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "suggestion": self.suggestion,
                "recoverable": self.recoverable,
            }
        }
