from fastapi import Cookie

from brand_monitor.core.exceptions import UnauthorizedError
from brand_monitor.core.security import SESSION_COOKIE_NAME, is_valid_session


async def require_admin_session(
    admin_session: str | None = Cookie(default=None, alias=SESSION_COOKIE_NAME),
) -> None:
    """Reject callers without a valid signed admin session cookie."""
    if not is_valid_session(admin_session):
        raise UnauthorizedError("Admin session required")


def get_orchestrator():
    """Run orchestrator wired from settings. Overridden in tests."""
    from brand_monitor.core.config import settings
    from brand_monitor.monitor.orchestrator import RunOrchestrator

    return RunOrchestrator.from_settings(settings)
