"""Error types raised by the board client."""

from __future__ import annotations

from typing import Any


class ServiceError(Exception):
    """
    Error carrying a machine-readable code alongside the human message.

    Mirrors the error body shape of the backend contract:
    ``{"error": ..., "message": ..., "details": {...}}``.
    """

    def __init__(
        self,
        error: str,
        message: str,
        status_code: int,
        details: dict[str, Any],
    ) -> None:
        super().__init__(message)
        self.error = error
        self.message = message
        self.status_code = status_code
        self.details = details

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(error={self.error!r}, message={self.message!r}, "
            f"status_code={self.status_code})"
        )


class ValidationFailed(ServiceError):
    """Raised when a local action is rejected before touching the store."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            error="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details or {},
        )
