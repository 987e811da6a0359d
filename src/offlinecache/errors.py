from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    NETWORK_ERROR = "NETWORK_ERROR"
    SETUP_FAILED = "SETUP_FAILED"
    POPULATE_FAILED = "POPULATE_FAILED"
    STORE_ERROR = "STORE_ERROR"
    INVALID_STATE = "INVALID_STATE"


class OfflineCacheError(Exception):
    """Raised for every expected failure inside the interception layer.

    Strategies catch ``NETWORK_ERROR`` to attempt their single fallback and
    re-raise it when no fallback exists, so the original caller sees the
    transport failure rather than a wrapped one.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.recoverable = recoverable

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "recoverable": self.recoverable,
            }
        }
