"""
Error taxonomy for the marketplace.
Every failure a caller can observe is one of these, and each carries the
HTTP status the API answers with.
"""


class MarketplaceError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message=None, data=None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.data = data


class ValidationError(MarketplaceError):
    status_code = 400
    message = "Invalid request"


class AuthenticationError(MarketplaceError):
    status_code = 401
    message = "Authentication required"


class AuthorizationError(MarketplaceError):
    status_code = 403
    message = "Unauthorized"


class NotFoundError(MarketplaceError):
    status_code = 404
    message = "Not found"


class UserNotFoundError(NotFoundError):
    message = "User not found"


class NumberNotFoundError(NotFoundError):
    message = "Number not found"


class ConflictError(MarketplaceError):
    status_code = 409
    message = "Conflict"


class NumberUnavailableError(ConflictError):
    message = "Number is not available"


class DuplicateError(ConflictError):
    message = "Record already exists"


class InsufficientFundsError(MarketplaceError):
    status_code = 402
    message = "Insufficient credits"


class StoreUnavailableError(MarketplaceError):
    status_code = 503
    message = "Data store unavailable"


class UnexpectedError(MarketplaceError):
    status_code = 500
