"""
dependencies.py — Shared FastAPI Dependencies

Authentication is external: the auth service stores ``user_id`` in the
signed session cookie. These dependencies only resolve that id and check
roles.

Business Rules:
- get_user returns None if not logged in (non-throwing)
- require_user raises 401 if not logged in, 403 if deactivated
- require_staff raises 403 unless role is employee or admin
- require_admin raises 403 if user.role != "admin"

Called by: all routers
Depends on: models, database
"""

import logging

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from .database import get_db
from .models import User

log = logging.getLogger(__name__)


# ── Authentication ────────────────────────────────────────────────────


def get_user(request: Request, db: Session) -> User | None:
    """Return current user from session, or None if not logged in."""
    uid = request.session.get("user_id")
    if not uid:
        return None
    return db.get(User, uid)


def require_user(request: Request, db: Session = Depends(get_db)) -> User:
    """Dependency: raises 401 if no authenticated user, 403 if deactivated."""
    user = get_user(request, db)
    if not user:
        raise HTTPException(401, "Not authenticated")
    if not getattr(user, "is_active", True):
        request.session.clear()
        raise HTTPException(403, "Account deactivated — contact admin")
    return user


# ── Authorization ─────────────────────────────────────────────────────


def is_admin(user: User) -> bool:
    return user.role == "admin"


def require_staff(user: User = Depends(require_user)) -> User:
    """Dependency: raises 403 unless the user is an employee or admin."""
    if not user.is_staff:
        raise HTTPException(403, "Staff access required")
    return user


def require_admin(user: User = Depends(require_user)) -> User:
    """Dependency: raises 403 if user is not an admin."""
    if not is_admin(user):
        raise HTTPException(403, "Admin access required")
    return user
