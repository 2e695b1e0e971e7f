"""User, session and permission models."""

import datetime as dt
from typing import Any, Dict, Literal, Optional

from pydantic import Field

from ar_admin.models.base import ServerRecord

UserRole = Literal[
    "customer", "admin", "manager", "collector", "viewer", "developer", "secretary"
]

USER_ROLES = (
    "customer",
    "admin",
    "manager",
    "collector",
    "viewer",
    "developer",
    "secretary",
)


class UserProfile(ServerRecord):
    """A row of ``user_profiles``.

    Attributes:
        id: Auth user id
        email: Login email
        role: One of USER_ROLES
        full_name: Display name
        assigned_color: Colour used for collector badges
        can_be_assigned_as_collector: Whether the user shows up in
            collector pickers
    """

    id: str
    email: str
    role: UserRole = "customer"
    full_name: Optional[str] = None
    assigned_color: Optional[str] = None
    can_be_assigned_as_collector: Optional[bool] = None
    approved: Optional[bool] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @property
    def display_name(self) -> str:
        return self.full_name or self.email


class UserPermission(ServerRecord):
    """One entry of ``get_user_permissions``."""

    permission_key: str
    permission_name: str = ""
    category: str = ""
    can_view: bool = False
    can_create: bool = False
    can_edit: bool = False
    can_delete: bool = False
    is_custom: bool = False


class AuthSession(ServerRecord):
    """Tokens returned by the password or refresh grant.

    ``expires_at`` is a unix timestamp in seconds, as issued by the auth
    server.
    """

    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    expires_at: Optional[int] = None
    user: Dict[str, Any] = Field(default_factory=dict)

    @property
    def user_id(self) -> Optional[str]:
        return self.user.get("id")

    @property
    def email(self) -> Optional[str]:
        return self.user.get("email")

    def is_expired(self, now: Optional[float] = None, leeway: int = 30) -> bool:
        """Whether the access token expires within ``leeway`` seconds."""
        if self.expires_at is None:
            return False
        if now is None:
            now = dt.datetime.now(dt.timezone.utc).timestamp()
        return now + leeway >= self.expires_at
