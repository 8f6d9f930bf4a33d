"""Access-control failures raised below the HTTP layer; main.py maps both to 403."""


class SecurityError(Exception):
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class AuthorizationError(SecurityError):
    """The actor is not the one allowed to act, e.g. reading another user's notification."""


class TenantIsolationError(SecurityError):
    """A stored record belongs to a different tenant than the request."""
