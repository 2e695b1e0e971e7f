"""
Sign-in, session restore and admin impersonation.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ar_admin.models.users import AuthSession, UserProfile
from ar_admin.services.activity_log import log_activity
from ar_admin.services.errors import (
    AuthenticationError,
    BackendError,
    PermissionDeniedError,
    SupabaseError,
)
from ar_admin.services.retry_handler import CircuitBreakerError, RetryHandler
from ar_admin.services.session_store import SessionStore
from ar_admin.services.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)


@dataclass
class AuthContext:
    """Who is signed in and whose view of the data is active.

    Attributes:
        user_id: Id of the signed-in user
        profile: Effective profile (the impersonated user while impersonating)
        is_impersonating: Whether an admin is acting as another user
        original_profile: The admin's own profile while impersonating
        session: Tokens of the signed-in user
    """

    user_id: str
    profile: UserProfile
    is_impersonating: bool = False
    original_profile: Optional[UserProfile] = None
    session: Optional[AuthSession] = None

    @property
    def effective_user_id(self) -> str:
        return self.profile.id

    @property
    def actor(self) -> UserProfile:
        """The person really at the keyboard."""
        return self.original_profile or self.profile


class AuthService:
    """
    Manages the console session.

    The session lives in a SessionStore so consecutive commands share one
    sign-in. Profile loads retry with their own policy in place of the
    client's; a profile that cannot be loaded ends the session.
    """

    def __init__(
        self,
        client: SupabaseClient,
        store: SessionStore,
        profile_retry: Optional[RetryHandler] = None,
    ):
        self.client = client
        self.store = store
        # 3 attempts, 1s base delay
        self.profile_retry = profile_retry or RetryHandler(
            max_retries=2, base_delay=1.0
        )

    def _fetch_profile(self, user_id: str) -> Optional[UserProfile]:
        result = (
            self.client.using(self.profile_retry)
            .table("user_profiles")
            .select("*")
            .eq("id", user_id)
            .maybe_single()
            .execute()
        )
        return UserProfile(**result.data) if result.data else None

    def load_profile(self, user_id: str) -> UserProfile:
        """
        Load a user's profile, clearing the session when that fails.

        Raises:
            AuthenticationError: If the profile cannot be loaded or is missing
        """
        try:
            profile = self._fetch_profile(user_id)
        except (BackendError, CircuitBreakerError) as e:
            logger.error(f"Failed to load profile for {user_id}: {e}")
            self.store.clear()
            raise AuthenticationError(
                "Failed to load user profile. Please log in again."
            ) from e

        if profile is None:
            logger.error(f"No profile found for user {user_id}")
            self.store.clear()
            raise AuthenticationError("User profile not found. Please log in again.")

        return profile

    def _log_rpc(self, function: str, user_id: str) -> None:
        try:
            self.client.rpc(function, {"p_user_id": user_id})
        except (BackendError, CircuitBreakerError) as e:
            logger.warning(f"Failed to record {function} for {user_id}: {e}")

    def sign_in(self, email: str, password: str) -> AuthContext:
        """
        Sign in with email and password and persist the session.

        Raises:
            AuthenticationError: If the credentials are rejected or the
                profile cannot be loaded
        """
        session = self.client.sign_in_with_password(email, password)
        if not session.user_id:
            raise AuthenticationError("Sign-in response did not include a user")

        self.store.save(session)
        self.store.clear_impersonation()
        self._log_rpc("log_user_login", session.user_id)

        profile = self.load_profile(session.user_id)
        logger.info(f"Signed in as {profile.email} ({profile.role})")
        return AuthContext(user_id=session.user_id, profile=profile, session=session)

    def _ensure_fresh(self, session: AuthSession) -> AuthSession:
        if not session.is_expired():
            return session

        if not session.refresh_token:
            self.store.clear()
            raise AuthenticationError("Session expired. Please log in again.", 401)

        try:
            refreshed = self.client.refresh_session(session.refresh_token)
        except AuthenticationError as e:
            self.store.clear()
            raise AuthenticationError(
                "Session expired. Please log in again.", e.status_code
            ) from e

        self.store.save(refreshed)
        logger.debug("Access token refreshed")
        return refreshed

    def current(self) -> AuthContext:
        """
        Restore the stored session.

        Raises:
            AuthenticationError: If nobody is signed in
        """
        session = self.store.load()
        if session is None or not session.user_id:
            raise AuthenticationError("Not authenticated", status_code=401)

        session = self._ensure_fresh(session)
        self.client.set_access_token(session.access_token)
        user_id = session.user_id

        record = self.store.load_impersonation()
        if record and record["original_user_id"] != user_id:
            logger.info("Discarding impersonation record of another user")
            self.store.clear_impersonation()
            record = None

        own_profile = self.load_profile(user_id)

        if record:
            target = self._fetch_profile(record["impersonated_user_id"])
            if target is not None:
                return AuthContext(
                    user_id=user_id,
                    profile=target,
                    is_impersonating=True,
                    original_profile=own_profile,
                    session=session,
                )
            logger.warning("Impersonated user no longer exists")
            self.store.clear_impersonation()

        return AuthContext(user_id=user_id, profile=own_profile, session=session)

    def impersonate(self, user_id: str) -> AuthContext:
        """
        Act as another user. Admins only.

        Raises:
            PermissionDeniedError: If the signed-in user is not an admin
            SupabaseError: If the target user does not exist
        """
        ctx = self.current()
        if ctx.actor.role != "admin":
            raise PermissionDeniedError("impersonation", "admin", "view")

        target = self._fetch_profile(user_id)
        if target is None:
            raise SupabaseError("User not found", status_code=404)

        self.store.save_impersonation(user_id, ctx.user_id)
        log_activity(
            self.client,
            ctx.user_id,
            "user_impersonation_started",
            details={
                "impersonated_user_id": user_id,
                "impersonated_user_email": target.email,
            },
        )
        logger.info(f"{ctx.actor.email} is now impersonating {target.email}")

        return AuthContext(
            user_id=ctx.user_id,
            profile=target,
            is_impersonating=True,
            original_profile=ctx.actor,
            session=ctx.session,
        )

    def stop_impersonation(self) -> AuthContext:
        """Return to the admin's own view. No-op when not impersonating."""
        ctx = self.current()
        if not ctx.is_impersonating or ctx.original_profile is None:
            return ctx

        log_activity(
            self.client,
            ctx.user_id,
            "user_impersonation_stopped",
            details={
                "impersonated_user_id": ctx.profile.id,
                "impersonated_user_email": ctx.profile.email,
            },
        )
        self.store.clear_impersonation()

        return AuthContext(
            user_id=ctx.user_id, profile=ctx.original_profile, session=ctx.session
        )

    def sign_out(self) -> None:
        """End the session locally and on the server."""
        session = self.store.load()
        if session is not None:
            self.client.set_access_token(session.access_token)
            if session.user_id:
                self._log_rpc("log_user_logout", session.user_id)

        self.store.clear_impersonation()
        self.store.clear()

        if session is not None:
            try:
                self.client.sign_out()
            except (BackendError, CircuitBreakerError) as e:
                logger.warning(f"Server-side logout failed: {e}")
