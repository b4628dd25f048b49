# storefront/auth.py
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from .database import get_db
from .log import get_logger
from .models import Role, User, UserSession

log = get_logger(__name__)

SESSION_COOKIE = "session_token"


def _token_from(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return request.cookies.get(SESSION_COOKIE) or None


def session_user(request: Request, db: Session) -> Optional[User]:
    """The user behind the request's session token, if the session is valid."""
    token = _token_from(request)
    if not token:
        return None
    sess = db.get(UserSession, token)
    if sess is None:
        return None
    if sess.expires_at is not None:
        expires = sess.expires_at
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        if expires <= datetime.now(timezone.utc):
            return None
    return sess.user


def optional_user(request: Request, db: Session = Depends(get_db)) -> Optional[User]:
    return session_user(request, db)


def current_user(request: Request, db: Session = Depends(get_db)) -> User:
    user = session_user(request, db)
    if user is None:
        log.info("auth_rejected", path=request.url.path, reason="no_session")
        raise HTTPException(status_code=401, detail="Please sign in")
    return user


def check_auth(allowed: Callable[[Role], bool]):
    """Dependency factory: the session user, provided their role passes `allowed`."""

    def dependency(request: Request, user: User = Depends(current_user)) -> User:
        if not allowed(user.role):
            log.warning("auth_rejected", path=request.url.path, user_id=user.id, role=user.role.value)
            raise HTTPException(status_code=403, detail="You are not allowed to do this action")
        return user

    return dependency


require_admin = check_auth(lambda role: role.can_manage_catalog)
require_dashboard = check_auth(lambda role: role.can_view_dashboard)
