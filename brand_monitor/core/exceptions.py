"""HTTP-facing application errors.

Raised from routers and dependencies; FastAPI renders them as
``{"detail": ...}`` with the class status code.
"""

from fastapi import HTTPException


class AppError(HTTPException):
    status_code = 500
    default_detail = "Internal error"

    def __init__(self, detail: str | None = None, headers: dict[str, str] | None = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail, headers=headers)


class BadRequestError(AppError):
    status_code = 400
    default_detail = "Bad request"


class UnauthorizedError(AppError):
    status_code = 401
    default_detail = "Not authenticated"


class ServiceUnavailableError(AppError):
    status_code = 503
    default_detail = "Service unavailable"


class BadGatewayError(AppError):
    status_code = 502
    default_detail = "Upstream service error"
