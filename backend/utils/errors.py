"""
Error taxonomy for the access-control core.

Services raise these; routers turn them into JSON responses. Each class
carries the HTTP status it maps to and a stable machine code.
"""


class AccessError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class AuthError(AccessError):
    """Bearer credential missing, malformed, expired or without an email claim."""
    status_code = 401
    code = "auth_error"


class ValidationError(AccessError):
    """Malformed reconciliation payload."""
    status_code = 400
    code = "validation_error"


class NotFoundError(AccessError):
    """No account for the given email."""
    status_code = 404
    code = "account_not_found"


class UpstreamError(AccessError):
    """Payment processor query failed. Always recovered locally."""
    status_code = 502
    code = "upstream_error"


class PersistenceError(AccessError):
    """Storage read or write failed."""
    status_code = 500
    code = "persistence_error"
