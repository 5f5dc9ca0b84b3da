# errors.py
from fastapi import HTTPException, status


class AppError(HTTPException):
    """Expected, operational error raised by the services.

    Rendered by FastAPI as ``{"detail": message}`` with the class status code.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Application error"

    headers = None

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(
            status_code=type(self).status_code,
            detail=self.message,
            headers=type(self).headers,
        )


class BadRequestError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad Request"


class UnauthorizedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"
    headers = {"WWW-Authenticate": "Bearer"}


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"
