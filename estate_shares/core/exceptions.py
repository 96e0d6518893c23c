"""Exception hierarchy for the ownership service.

Every error carries the HTTP status it is reported with, so the handlers
registered in ``estate_shares.application.create_app`` can render them uniformly as
``{"error": message}``.
"""

from fastapi import status


class EstateSharesError(Exception):
    """Base exception for all service errors."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(EstateSharesError):
    """Raised for missing or malformed fields and unregistered references."""


class NotFoundError(EstateSharesError):
    """Raised when a user or property does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(EstateSharesError):
    """Raised when a username or email is already taken."""


class ForbiddenError(EstateSharesError):
    """Raised when a caller may not perform an operation on a property."""


class InsufficientSharesError(EstateSharesError):
    """Raised when a holder tries to transfer more shares than it holds."""
