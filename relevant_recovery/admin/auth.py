# relevant_recovery/admin/auth.py
from __future__ import annotations

from typing import Any, Dict, Optional

from flask import session
from flask_login import UserMixin, login_user, logout_user

TOKEN_KEY = "adminToken"
USER_KEY = "adminUser"


class AdminUser(UserMixin):
    """The signed-in admin. The backend owns the account; we only keep its token and profile."""

    def __init__(self, profile: Dict[str, Any]) -> None:
        self.profile = dict(profile or {})
        self.id = str(self.profile.get("_id") or self.profile.get("id") or self.profile.get("email") or "admin")

    @property
    def email(self) -> str:
        return str(self.profile.get("email") or "")

    @property
    def name(self) -> str:
        return str(self.profile.get("name") or self.email or "Admin")


def load_admin(user_id: str) -> Optional[AdminUser]:
    if not session.get(TOKEN_KEY):
        return None
    user = AdminUser(session.get(USER_KEY) or {})
    return user if user.id == str(user_id) else None


def sign_in(token: str, profile: Dict[str, Any]) -> AdminUser:
    session[TOKEN_KEY] = token
    session[USER_KEY] = dict(profile or {})
    user = AdminUser(session[USER_KEY])
    login_user(user)
    return user


def sign_out() -> None:
    logout_user()
    session.pop(TOKEN_KEY, None)
    session.pop(USER_KEY, None)
