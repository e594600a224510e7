"""Application error taxonomy.

Every error a caller may see is an ``AppError`` carrying its HTTP status and a
client-safe message. Handlers in ``main.py`` render them as ``{"detail": ...}``.
"""


class AppError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = 500
    detail: str = "Internal server error"

    def __init__(self, detail: str | None = None, headers: dict[str, str] | None = None) -> None:
        if detail is not None:
            self.detail = detail
        self.headers = headers
        super().__init__(self.detail)


class ValidationError(AppError):
    status_code = 400
    detail = "Validation failed"


class DuplicateEmail(AppError):
    status_code = 400
    detail = "User already exists with this email"


class InvalidCredentials(AppError):
    status_code = 401
    detail = "Invalid email or password"


class AccountDeactivated(AppError):
    status_code = 403
    detail = "Account has been deactivated"


class Unauthorized(AppError):
    status_code = 401
    detail = "Not authenticated"


class InvalidToken(Unauthorized):
    detail = "Invalid token"


class ExpiredToken(Unauthorized):
    detail = "Token has expired"


class Forbidden(AppError):
    status_code = 403
    detail = "Admin access required"


class NotFound(AppError):
    status_code = 404
    detail = "Not found"


class RateLimited(AppError):
    status_code = 429
    detail = "Too many requests, please try again later."


class InvalidOrExpiredCode(AppError):
    status_code = 400
    detail = "Invalid or expired verification code"


class InternalError(AppError):
    status_code = 500
    detail = "Internal server error"
