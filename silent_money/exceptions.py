"""
Domain exceptions raised by services and repositories.

Each exception carries the HTTP status and error code the API reports;
the application exception handler turns them into JSON responses.
"""

from typing import Optional


class SilentMoneyError(Exception):
    """Base class for expected, user-facing failures."""

    status_code: int = 400
    error_code: str = "SM_000"

    def __init__(self, detail: str, error_code: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail
        if error_code:
            self.error_code = error_code


class NotFoundError(SilentMoneyError):
    """Requested row does not exist or is not visible to the caller."""

    status_code = 404
    error_code = "SM_404"


class ConflictError(SilentMoneyError):
    """Unique constraint clash (duplicate review, email, slug, name)."""

    status_code = 409
    error_code = "SM_409"


class PermissionDeniedError(SilentMoneyError):
    """Caller is authenticated but may not perform the operation."""

    status_code = 403
    error_code = "SM_403"


class InvalidStateError(SilentMoneyError):
    """Operation is not allowed in the current state of the row."""

    status_code = 422
    error_code = "SM_422"


class ExternalServiceError(SilentMoneyError):
    """Object storage or the contact relay failed."""

    status_code = 502
    error_code = "SM_502"


class AuthenticationError(SilentMoneyError):
    """Credentials or token are missing, wrong or expired."""

    status_code = 401
    error_code = "SM_401"
