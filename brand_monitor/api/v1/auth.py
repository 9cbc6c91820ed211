from fastapi import APIRouter, Request, Response

from brand_monitor.core.config import settings
from brand_monitor.core.exceptions import ServiceUnavailableError, UnauthorizedError
from brand_monitor.core.rate_limit import LOGIN_LIMIT, limiter
from brand_monitor.core.security import (
    SESSION_COOKIE_NAME,
    create_session_token,
    is_valid_session,
    verify_admin_password,
)
from brand_monitor.schemas.auth import AuthStatusResponse, LoginRequest, MessageResponse

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=MessageResponse)
@limiter.limit(LOGIN_LIMIT)
async def login(request: Request, response: Response, body: LoginRequest):
    if not settings.admin_password:
        raise ServiceUnavailableError("ADMIN_PASSWORD is not configured")
    if not verify_admin_password(body.password):
        raise UnauthorizedError("Invalid password")

    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=create_session_token(),
        max_age=settings.session_expire_hours * 3600,
        httponly=True,
        secure=settings.app_env == "production",
        samesite="lax",
        path="/",
    )
    return MessageResponse(message="Logged in")


@router.get("/check", response_model=AuthStatusResponse)
async def check(request: Request):
    return AuthStatusResponse(authenticated=is_valid_session(request.cookies.get(SESSION_COOKIE_NAME)))


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response):
    response.delete_cookie(SESSION_COOKIE_NAME, path="/")
    return MessageResponse(message="Logged out")
