"""
Shared state for console commands.

A ``Console`` is created by the top-level group and handed to every
command through ``click``'s context object. It builds the backend clients
from configuration and the stored session, and gates panels behind their
view permissions.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import click
from pydantic import ValidationError

from ar_admin.cli.error_handlers import ConfigurationError, DataValidationError
from ar_admin.config.settings import AdminConsoleConfig, get_config
from ar_admin.permissions import PermissionSet, load_permissions
from ar_admin.services.auth import AuthContext, AuthService
from ar_admin.services.edge_functions import EdgeFunctionClient
from ar_admin.services.errors import PermissionDeniedError
from ar_admin.services.session_store import SessionStore
from ar_admin.services.supabase_client import SupabaseClient
from ar_admin.utils.logging_utils import LogContext
from ar_admin.validators import ValidationReport
from ar_admin.views import ViewRegistry, ViewSpec, build_registry

logger = logging.getLogger(__name__)


@dataclass
class Panel:
    """An opened view: who opened it, with which permissions."""

    view: ViewSpec
    auth: AuthContext
    permissions: PermissionSet

    @property
    def user_id(self) -> str:
        """Effective user the panel shows data for."""
        return self.auth.effective_user_id


class Console:
    """Lazily built clients and services for one command invocation."""

    def __init__(
        self, debug: bool = False, config: Optional[AdminConsoleConfig] = None
    ):
        self.debug = debug
        self._config = config
        self._client: Optional[SupabaseClient] = None
        self._functions: Optional[EdgeFunctionClient] = None
        self._store: Optional[SessionStore] = None
        self._auth: Optional[AuthService] = None
        self._registry: Optional[ViewRegistry] = None

    @property
    def config(self) -> AdminConsoleConfig:
        if self._config is None:
            try:
                self._config = get_config()
            except ValidationError as e:
                missing = ", ".join(
                    str(err["loc"][0]) for err in e.errors() if err.get("loc")
                )
                raise ConfigurationError(
                    f"Invalid or missing settings: {missing}",
                    recovery_hint="Set SUPABASE_URL and SUPABASE_ANON_KEY in .env",
                ) from e
        return self._config

    @property
    def store(self) -> SessionStore:
        if self._store is None:
            self._store = SessionStore(self.config.session_file)
        return self._store

    @property
    def client(self) -> SupabaseClient:
        if self._client is None:
            session = self.store.load()
            self._client = SupabaseClient.from_config(
                self.config, access_token=session.access_token if session else None
            )
        return self._client

    @property
    def functions(self) -> EdgeFunctionClient:
        if self._functions is None:
            self._functions = EdgeFunctionClient.from_config(
                self.config, access_token=self.client.access_token
            )
        return self._functions

    @property
    def auth(self) -> AuthService:
        if self._auth is None:
            self._auth = AuthService(self.client, self.store)
        return self._auth

    @property
    def registry(self) -> ViewRegistry:
        if self._registry is None:
            self._registry = build_registry()
        return self._registry

    def current_user(self) -> AuthContext:
        """Restore the session and point both clients at its token."""
        ctx = self.auth.current()
        self.functions.access_token = self.client.access_token
        return ctx

    def open_view(self, view_key: str) -> Panel:
        """
        Check that the effective user may open ``view_key``.

        Raises:
            AuthenticationError: If nobody is signed in
            PermissionDeniedError: If the permission check fails
        """
        ctx = self.current_user()
        permissions = load_permissions(self.client, ctx.effective_user_id)
        spec = self.registry.resolve(view_key, permissions, role=ctx.profile.role)
        click_ctx = click.get_current_context(silent=True)
        if click_ctx is not None:
            click_ctx.with_resource(LogContext(view=spec.key))
        logger.debug(f"Opened view {spec.key} for {ctx.profile.email}")
        return Panel(view=spec, auth=ctx, permissions=permissions)


def ensure_valid(report: ValidationReport) -> None:
    """Raise with every collected issue before any outbound call is made."""
    if not report.is_valid():
        raise DataValidationError(report.format())


def require_action(panel: Panel, action: str) -> None:
    """Check a stronger action on the panel's permission than opening needs."""
    if not panel.permissions.has_permission(panel.view.permission, action):
        raise PermissionDeniedError(panel.view.key, panel.view.permission, action)


pass_console = click.make_pass_decorator(Console, ensure=True)
