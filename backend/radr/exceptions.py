"""Domain errors raised by the service layer.

Routers never translate these by hand; ``radr.main`` registers a single
handler that renders any ``RadrError`` as ``{"detail": message}`` with the
error's status code.
"""


class RadrError(Exception):
    """Base class for errors surfaced to the API caller."""

    status_code = 400

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(RadrError):
    """Missing or malformed required field (coordinates, name, key, content)."""

    status_code = 400


class Forbidden(RadrError):
    """Authorization matrix violation."""

    status_code = 403


class NotFound(RadrError):
    """Group, membership, message or user does not exist (or has expired)."""

    status_code = 404
