"""Session-cookie gate for admin operations."""

import hmac
from typing import Optional

from fastapi import HTTPException, Request
import structlog

from ..config.settings import settings

logger = structlog.get_logger()

SESSION_USER_KEY = "admin_user"


def check_credentials(username: str, password: str) -> bool:
    """Compare against the configured admin account in constant time."""
    user_ok = hmac.compare_digest(username.encode(), settings.admin_username.encode())
    password_ok = hmac.compare_digest(
        password.encode(), settings.admin_password.get_secret_value().encode()
    )
    return user_ok and password_ok


def login(request: Request, username: str, password: str) -> bool:
    if not check_credentials(username, password):
        logger.warning("admin_login_failed", username=username)
        return False
    request.session[SESSION_USER_KEY] = username
    logger.info("admin_logged_in", username=username)
    return True


def logout(request: Request) -> None:
    request.session.clear()


def current_user(request: Request) -> Optional[str]:
    return request.session.get(SESSION_USER_KEY)


def require_admin(request: Request) -> str:
    """FastAPI dependency: 401 unless the session carries an admin."""
    user = current_user(request)
    if not user:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user
