import hmac
from datetime import datetime, timedelta, timezone

import jwt

from brand_monitor.core.config import settings

SESSION_COOKIE_NAME = "admin_session"
SESSION_TOKEN_TYPE = "admin_session"


def verify_admin_password(password: str) -> bool:
    """Constant-time comparison against the configured shared secret."""
    if not settings.admin_password:
        return False
    return hmac.compare_digest(password.encode("utf-8"), settings.admin_password.encode("utf-8"))


def create_session_token() -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": "admin",
        "type": SESSION_TOKEN_TYPE,
        "iat": now,
        "exp": now + timedelta(hours=settings.session_expire_hours),
    }
    return jwt.encode(payload, settings.session_secret_key, algorithm=settings.jwt_algorithm)


def decode_session_token(token: str) -> dict:
    """Decode and validate a session token. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.session_secret_key, algorithms=[settings.jwt_algorithm])


def is_valid_session(token: str | None) -> bool:
    if not token:
        return False
    try:
        payload = decode_session_token(token)
    except jwt.PyJWTError:
        return False
    return payload.get("type") == SESSION_TOKEN_TYPE
