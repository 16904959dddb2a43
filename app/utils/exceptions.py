from fastapi import HTTPException, status


class BlogError(Exception):
    """Base class for errors raised by the service layer.

    Each subclass maps to one HTTP status; the handler registered in
    ``main.py`` renders ``{"detail": ...}`` with that status.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request failed"

    def __init__(self, detail: str = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(BlogError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "Invalid input"


class ConflictError(BlogError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Resource already exists"


class NotFoundError(BlogError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class AuthError(BlogError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Authentication failed"


class ExpiredOrInvalidError(AuthError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Reset link is invalid or has expired"


class PermissionDeniedError(BlogError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Forbidden"


class RateLimitError(BlogError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_detail = "Rate limit exceeded"


CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Could not validate credentials",
    headers={"WWW-Authenticate": "Bearer"},
)

ADMIN_FORBIDDEN_EXCEPTION = HTTPException(
    status_code=status.HTTP_403_FORBIDDEN,
    detail="Forbidden",
)

USER_NOT_FOUND_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="User not found",
    headers={"WWW-Authenticate": "Bearer"},
)
