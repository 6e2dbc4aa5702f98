"""
Error taxonomy for the Sweet Shop service.

Every error carries the HTTP status it is rendered with; the application
factory registers one handler that turns any of them into the uniform
``{"status": "error", "message": ...}`` body.
"""
from fastapi import status


class SweetShopError(Exception):
    """Base class for errors that map onto an HTTP response."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    headers = None

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SweetShopError):
    """Malformed or out-of-range input."""
    status_code = status.HTTP_400_BAD_REQUEST


class InsufficientStock(SweetShopError):
    """A purchase asked for more units than are in stock."""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, requested: int, available: int):
        super().__init__(f"Insufficient stock. Available: {available}, Requested: {requested}")
        self.requested = requested
        self.available = available


class Unauthenticated(SweetShopError):
    """Missing, malformed, invalid or expired credentials."""
    status_code = status.HTTP_401_UNAUTHORIZED
    headers = {"WWW-Authenticate": "Bearer"}


class Forbidden(SweetShopError):
    """Authenticated, but not allowed by role or ownership."""
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(SweetShopError):
    status_code = status.HTTP_404_NOT_FOUND


class Internal(SweetShopError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
