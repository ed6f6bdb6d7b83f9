"""Application errors with the HTTP status they surface as.

Aggregates raise Protean's ``ValidationError`` for rule violations; the
errors here are raised by command handlers and the payment layer.
"""


class StorefrontError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidRequestError(StorefrontError):
    """Missing or malformed request fields."""

    status_code = 400


class NotFoundError(StorefrontError):
    status_code = 404


class AuthorizationError(StorefrontError):
    """Wrong owner or insufficient role. 401 for ownership, 403 for role."""

    status_code = 403


class ConflictError(StorefrontError):
    """Request conflicts with current state (stock, lifecycle)."""

    status_code = 400


class UpstreamError(StorefrontError):
    """Payment provider failure or rejected provider signature."""

    status_code = 500
