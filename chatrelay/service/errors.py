from __future__ import annotations

from typing import Any, Optional


class ServiceError(Exception):
    """Base class for service-layer exceptions mapped to HTTP responses.

    Each subclass fixes the HTTP status code; the message (or an arbitrary
    JSON-serializable detail) becomes the ``error`` member of the body.
    """

    status_code: int = 400

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        detail: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.detail = detail

    @property
    def body(self) -> Any:
        return self.detail if self.detail is not None else self.message


class BadRequestError(ServiceError):
    """Request is malformed or missing required fields (400)."""
    status_code = 400


class AuthenticationError(ServiceError):
    """Credential missing (401)."""
    status_code = 401


class ForbiddenError(ServiceError):
    """Credential present but rejected (403)."""
    status_code = 403


class UpstreamError(ServiceError):
    """An external collaborator reported a failure (500)."""
    status_code = 500


__all__ = [
    "ServiceError",
    "BadRequestError",
    "AuthenticationError",
    "ForbiddenError",
    "UpstreamError",
]
