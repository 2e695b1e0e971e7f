"""
Role and permission checks.

Permissions come from the ``get_user_permissions`` database function. Admins
bypass every check.
"""

import logging
from typing import Dict, Iterable, List, Optional

from pydantic import ValidationError

from ar_admin.models.users import UserPermission
from ar_admin.services.errors import BackendError
from ar_admin.services.retry_handler import CircuitBreakerError

logger = logging.getLogger(__name__)

# Consolidated permission keys
CONSOLIDATED_KEYS = (
    # Dashboard & analytics
    "dashboard_main",
    "analytics_basic",
    "analytics_advanced",
    # Core operations
    "customers",
    "invoices",
    "payments",
    "emails",
    # Features
    "reminders",
    "my_assignments",
    "collection_ticketing",
    # Reports & integrations
    "reports",
    "stripe",
    "monitoring",
    # Administration
    "admin_users",
    "admin_roles",
    "admin_sync_config",
    "admin_webhooks",
    "admin_collector_control",
    "admin_dashboard",
    # Technical
    "acumatica",
    "diagnostics",
)

# Older keys still referenced by saved role templates
LEGACY_ALIASES = {
    "CUSTOMERS_VIEW": "customers",
    "CUSTOMERS_EDIT": "customers",
    "CUSTOMERS_ASSIGNMENTS": "customers",
    "CUSTOMERS_FILES": "customers",
    "CUSTOMERS_REPORTS": "customers",
    "CUSTOMERS_DASHBOARD": "customers",
    "INVOICES_VIEW": "invoices",
    "INVOICES_EDIT": "invoices",
    "INVOICES_STATUS": "invoices",
    "INVOICES_MEMOS": "invoices",
    "PAYMENTS_VIEW": "payments",
    "PAYMENTS_EDIT": "payments",
    "PAYMENTS_APPLICATIONS": "payments",
    "PAYMENTS_CHECK_IMAGES": "payments",
    "EMAIL_INBOX": "emails",
    "EMAIL_SEND": "emails",
    "EMAIL_REPLY": "emails",
    "EMAIL_TEMPLATES": "emails",
    "EMAIL_FORMULAS": "emails",
    "ANALYTICS_INVOICES": "analytics_basic",
    "ANALYTICS_PAYMENTS": "analytics_basic",
    "ANALYTICS_INVOICE_STATUS": "analytics_basic",
    "ANALYTICS_DASHBOARD": "analytics_basic",
    "LOGS_SYNC": "monitoring",
    "LOGS_WEBHOOK": "monitoring",
    "LOGS_SCHEDULER": "monitoring",
    "MONITOR_CRON": "monitoring",
    "MONITOR_SYNC_STATUS": "monitoring",
    "REPORTS_MONTHLY": "reports",
    "REPORTS_CUSTOM": "reports",
    "DOCUMENTS_VIEW": "reports",
    "ACUMATICA_CUSTOMERS": "acumatica",
    "ACUMATICA_SYNC": "acumatica",
    "ACUMATICA_TEST": "diagnostics",
    "ACUMATICA_CREDENTIALS": "acumatica",
}

PERMISSION_KEYS: Dict[str, str] = {key.upper(): key for key in CONSOLIDATED_KEYS}
PERMISSION_KEYS.update(LEGACY_ALIASES)

ACTIONS = ("view", "create", "edit", "delete")


def resolve_permission_key(key: str) -> str:
    """Map a legacy or upper-case key onto its consolidated key."""
    return PERMISSION_KEYS.get(key, PERMISSION_KEYS.get(key.upper(), key))


class PermissionSet:
    """
    The effective permissions of one user.

    Example:
        >>> perms = PermissionSet("viewer", [UserPermission(
        ...     permission_key="customers", can_view=True)])
        >>> perms.has_permission("CUSTOMERS_VIEW")
        True
        >>> perms.has_permission("customers", "edit")
        False
    """

    def __init__(
        self, role: str = "", permissions: Optional[Iterable[UserPermission]] = None
    ):
        self.role = role or ""
        self.permissions: List[UserPermission] = list(permissions or [])
        self._by_key = {p.permission_key: p for p in self.permissions}

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_manager(self) -> bool:
        return self.role == "manager"

    @property
    def is_collector(self) -> bool:
        return self.role == "collector"

    @property
    def is_viewer(self) -> bool:
        return self.role == "viewer"

    def has_permission(self, key: str, action: str = "view") -> bool:
        if self.is_admin:
            return True

        permission = self._by_key.get(resolve_permission_key(key))
        if permission is None:
            return False

        if action == "view":
            return permission.can_view
        if action == "create":
            return permission.can_create
        if action == "edit":
            return permission.can_edit
        if action == "delete":
            return permission.can_delete
        return False

    def has_any(self, keys: Iterable[str], action: str = "view") -> bool:
        return any(self.has_permission(key, action) for key in keys)

    def has_all(self, keys: Iterable[str], action: str = "view") -> bool:
        return all(self.has_permission(key, action) for key in keys)


def load_permissions(client, user_id: str) -> PermissionSet:
    """
    Load the role and permissions of a user.

    Any failure yields an empty permission list rather than an exception.
    """
    role = ""
    try:
        result = (
            client.table("user_profiles")
            .select("role")
            .eq("id", user_id)
            .maybe_single()
            .execute()
        )
        if result.data:
            role = result.data.get("role") or ""

        rows = client.rpc("get_user_permissions", {"user_uuid": user_id}) or []
        permissions = [UserPermission(**row) for row in rows]
    except (BackendError, CircuitBreakerError, ValidationError) as e:
        logger.error(f"Error loading permissions for {user_id}: {e}")
        return PermissionSet(role, [])

    logger.debug(f"Loaded {len(permissions)} permissions for {user_id} ({role})")
    return PermissionSet(role, permissions)
