"""Admin user management: create, resend temporary password, force delete."""

import datetime as dt
import hashlib
import logging
import secrets
import string
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from ar_admin.models.users import USER_ROLES
from ar_admin.services.edge_functions import EdgeFunctionClient
from ar_admin.services.errors import BackendError, SupabaseError
from ar_admin.services.retry_handler import CircuitBreakerError
from ar_admin.services.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)

PASSWORD_LENGTH = 12
PASSWORD_SYMBOLS = "!@#$%^&*"
PASSWORD_CHARSET = string.ascii_letters + string.digits + PASSWORD_SYMBOLS
TEMPORARY_PASSWORD_TTL = dt.timedelta(days=7)


def generate_temporary_password(length: int = PASSWORD_LENGTH) -> str:
    """
    Random password with at least one upper, lower, digit and symbol.

    Example:
        >>> len(generate_temporary_password())
        12
    """
    if length < 4:
        raise ValueError("length must be at least 4")

    chars = [
        secrets.choice(string.ascii_uppercase),
        secrets.choice(string.ascii_lowercase),
        secrets.choice(string.digits),
        secrets.choice(PASSWORD_SYMBOLS),
    ]
    chars.extend(secrets.choice(PASSWORD_CHARSET) for _ in range(length - len(chars)))
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


@dataclass
class PasswordDelivery:
    """Outcome of creating a user or resetting their password.

    When the email failed, ``temporary_password`` has to be shared by hand.
    """

    user_id: str
    email: str
    temporary_password: str
    email_sent: bool
    email_error: Optional[str] = None

    @property
    def message(self) -> str:
        if self.email_sent:
            return f"A temporary password has been sent to {self.email}"
        return (
            "The email failed to send. Please share this temporary password "
            f"manually: {self.temporary_password}"
        )


class UserAdminService:
    """User administration backed by auth, ``user_profiles`` and edge functions."""

    def __init__(
        self,
        client: SupabaseClient,
        functions: EdgeFunctionClient,
        profile_wait: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.functions = functions
        self.profile_wait = profile_wait
        self.sleep = sleep

    def _send_password_email(
        self, email: str, name: str, password: str
    ) -> Optional[str]:
        """Email the password; returns the error message on failure."""
        try:
            self.functions.invoke(
                "send-temporary-password",
                {"to": email, "name": name, "temporaryPassword": password},
            )
        except BackendError as e:
            logger.warning(f"Temporary password email to {email} failed: {e}")
            return str(e)
        return None

    def _store_password_hash(
        self, user_id: str, password: str, now: Optional[dt.datetime] = None
    ) -> None:
        expires = (now or dt.datetime.now(dt.timezone.utc)) + TEMPORARY_PASSWORD_TTL
        try:
            self.client.table("temporary_passwords").insert(
                {
                    "user_id": user_id,
                    "temp_password_hash": hash_password(password),
                    "is_active": True,
                    "expires_at": expires.isoformat(),
                },
                returning=False,
            ).execute()
        except (BackendError, CircuitBreakerError) as e:
            logger.error(f"Error storing temporary password for {user_id}: {e}")

    def create_user(self, email: str, full_name: str, role: str) -> PasswordDelivery:
        """
        Create an approved user with a temporary password and email it.

        Args:
            email: Login email
            full_name: Display name
            role: One of USER_ROLES

        Returns:
            PasswordDelivery; the password is included for manual sharing

        Raises:
            ValueError: Missing field, invalid email or unknown role
            SupabaseError: Sign-up or profile write rejected
        """
        email = (email or "").strip()
        full_name = (full_name or "").strip()
        if not email or not full_name or not role:
            raise ValueError("Please fill in all fields")
        if "@" not in email:
            raise ValueError("Please enter a valid email address")
        if role not in USER_ROLES:
            raise ValueError(f"role must be one of {', '.join(USER_ROLES)}")

        password = generate_temporary_password()
        user = self.client.sign_up(
            email,
            password,
            {"full_name": full_name, "role": role, "created_by_admin": True},
        )
        user_id = user.get("id") if isinstance(user, dict) else None
        if not user_id:
            raise SupabaseError("User creation failed - no user data returned")

        # The profile row is created by a database trigger
        if self.profile_wait > 0:
            self.sleep(self.profile_wait)

        existing = (
            self.client.table("user_profiles")
            .select("id")
            .eq("id", user_id)
            .maybe_single()
            .execute()
        )
        if existing.data:
            (
                self.client.table("user_profiles")
                .update({"full_name": full_name, "role": role, "approved": True})
                .eq("id", user_id)
                .execute()
            )
        else:
            self.client.table("user_profiles").insert(
                {
                    "id": user_id,
                    "email": email,
                    "full_name": full_name,
                    "role": role,
                    "approved": True,
                },
                returning=False,
            ).execute()

        self._store_password_hash(user_id, password)
        error = self._send_password_email(email, full_name, password)
        logger.info(f"Created user {email} with role {role}")

        return PasswordDelivery(
            user_id=user_id,
            email=email,
            temporary_password=password,
            email_sent=error is None,
            email_error=error,
        )

    def resend_temporary_password(self, email: str) -> PasswordDelivery:
        """
        Reset an existing user's password and email the new one.

        Raises:
            ValueError: Empty email
            SupabaseError: User not found (404) or the reset was rejected
            AuthenticationError: No service role key configured
        """
        email = (email or "").strip()
        if not email:
            raise ValueError("Please enter an email address")

        result = (
            self.client.table("user_profiles")
            .select("id, email, full_name")
            .eq("email", email)
            .maybe_single()
            .execute()
        )
        profile: Dict[str, Any] = result.data or {}
        if not profile.get("id"):
            raise SupabaseError("User not found", status_code=404)

        password = generate_temporary_password()
        self.client.admin_update_user(profile["id"], {"password": password})
        self._store_password_hash(profile["id"], password)

        name = profile.get("full_name") or email
        error = self._send_password_email(email, name, password)
        return PasswordDelivery(
            user_id=profile["id"],
            email=email,
            temporary_password=password,
            email_sent=error is None,
            email_error=error,
        )

    def force_delete_user(self, email: str) -> Dict[str, Any]:
        """Remove the auth user and every row that references it."""
        email = (email or "").strip()
        if not email:
            raise ValueError("Please enter an email address")
        result = self.functions.invoke("force-delete-user", {"email": email})
        logger.warning(f"Force deleted user {email}")
        return result
