"""Domain errors raised by the repository and mapped to HTTP responses by the API."""
from __future__ import annotations


class VentureError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(VentureError):
    """Missing, out-of-range or invalid-enum field."""

    status_code = 400


class ConflictError(VentureError):
    """Duplicate venture code."""

    status_code = 400


class NotFoundError(VentureError):
    status_code = 404

    def __init__(self, message: str = "Not found") -> None:
        super().__init__(message)


class StoreError(VentureError):
    """Connectivity or internal failure in the backing store."""

    status_code = 500
