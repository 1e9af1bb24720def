"""
Error taxonomy shared by use cases, the HTTP layer and the client
"""
from decimal import Decimal


class DomainError(Exception):
    """Base class for every error the application reports to callers"""
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class Unauthorized(DomainError):
    """No valid user identity"""
    status_code = 401


class Forbidden(DomainError):
    """Authenticated, but not a member of the target couple"""
    status_code = 403


class NotFound(DomainError):
    """Missing, or owned by another couple (deliberately indistinguishable)"""
    status_code = 404


class ValidationError(DomainError, ValueError):
    """Missing or malformed input"""
    status_code = 400


class InvalidBudget(ValidationError):
    """
    Allocation buckets do not add up to the monthly total, or the total is not positive.

    difference = monthly_total - (his + hers + shared); positive means under-allocated.
    """

    def __init__(self, message: str, difference: Decimal | None = None):
        super().__init__(message)
        self.difference = difference


class UpstreamFailure(DomainError):
    """Persistence or network failure. Retrying the user action is always safe."""
    status_code = 503
