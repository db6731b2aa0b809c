"""Auth exceptions."""


class AuthException(Exception):
    """Base auth exception with HTTP status."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class UnauthorizedError(AuthException):
    """Authentication-path failure.

    Every subclass answers with the same status and message so callers
    cannot tell which condition tripped.
    """

    default_message = "Unauthorized"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message, status_code=401)


class AuthenticationFailed(UnauthorizedError):
    default_message = "Invalid credentials"


class InvalidAccessToken(UnauthorizedError):
    pass


class InvalidRefreshToken(UnauthorizedError):
    pass


class RefreshExpired(UnauthorizedError):
    pass


class SessionNotFound(UnauthorizedError):
    pass


class SessionExpired(UnauthorizedError):
    pass


class TokenError(Exception):
    """Raised by the token codec; mapped to UnauthorizedError by callers."""


class MalformedToken(TokenError):
    pass


class InvalidSignature(TokenError):
    pass


class TokenExpired(TokenError):
    """Signature checked out but the token is past its expiry.

    ``claims`` holds the verified claims so callers can clean up state keyed
    on them.
    """

    def __init__(self, message: str, claims=None):
        super().__init__(message)
        self.claims = claims


class StoreError(Exception):
    """Persistence failure in a principal store."""


class StaleRecordError(StoreError):
    """The stored principal changed since it was read."""


class PrincipalNotFoundError(StoreError):
    pass


class DuplicatePrincipalError(StoreError):
    """A unique key (email or mobile) is already taken."""
