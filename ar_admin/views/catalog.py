"""The views offered by the console, in navigation order."""

from ar_admin.views.registry import ViewRegistry, ViewSpec

CONSOLE_VIEWS = (
    # Analytics
    ViewSpec(
        "payment-analytics",
        "Payment Analytics",
        "Analytics",
        "analytics_basic",
        handler="analytics payments",
    ),
    ViewSpec(
        "invoice-analytics",
        "Invoice Analytics",
        "Analytics",
        "analytics_basic",
        handler="analytics invoices",
    ),
    # Customers and own work
    ViewSpec("customers", "Customers", "Customers", "customers"),
    ViewSpec("my-assignments", "My Assignments", "My Work", "my_assignments"),
    ViewSpec(
        "collector-progress",
        "My Progress",
        "My Work",
        "my_assignments",
        handler="collectors progress",
    ),
    ViewSpec(
        "reminders", "My Reminders", "My Work", "reminders", handler="reminders list"
    ),
    # Monitoring
    ViewSpec(
        "sync-status",
        "System Health",
        "Monitoring",
        "monitoring",
        handler="sync status",
    ),
    ViewSpec(
        "sync-logs",
        "Sync Change Logs",
        "Monitoring",
        "monitoring",
        handler="sync change-logs",
    ),
    ViewSpec(
        "schedule",
        "Scheduler",
        "Monitoring",
        "monitoring",
        handler="sync scheduler-logs",
    ),
    ViewSpec("logs", "System Logs", "Monitoring", "monitoring", handler="cron list"),
    # Acumatica
    ViewSpec(
        "invoice-fetch",
        "Invoice Bulk Fetch",
        "Acumatica",
        "acumatica",
        "create",
        handler="fetch invoices",
    ),
    ViewSpec(
        "payment-fetch",
        "Payment Bulk Fetch",
        "Acumatica",
        "acumatica",
        "create",
        handler="fetch payments",
    ),
    ViewSpec(
        "customer-fetch",
        "Customer Bulk Fetch",
        "Acumatica",
        "acumatica",
        "create",
        handler="fetch customers",
    ),
    ViewSpec(
        "payment-data-backfill",
        "Payment Data Backfill",
        "Acumatica",
        "acumatica",
        "create",
        handler="backfill payment-data",
    ),
    ViewSpec(
        "bulk-application-fetcher",
        "Application Backfill",
        "Acumatica",
        "acumatica",
        "create",
        handler="backfill applications",
    ),
    ViewSpec(
        "auto-backfill",
        "Backfill Monitor",
        "Acumatica",
        "acumatica",
        handler="backfill status",
    ),
    # Administration
    ViewSpec(
        "sync-config",
        "Sync Settings",
        "Administration",
        "admin_sync_config",
        handler="sync config",
    ),
    ViewSpec(
        "cron-control",
        "Cron Jobs",
        "Administration",
        "admin_sync_config",
        "edit",
        handler="cron list",
    ),
    ViewSpec(
        "collector-control",
        "Collector Control",
        "Administration",
        "admin_collector_control",
        handler="collectors list",
    ),
    ViewSpec(
        "user-management",
        "User Management",
        "Administration",
        "admin_users",
        "create",
        handler="users create",
    ),
    # Diagnostics
    ViewSpec(
        "credential-tester",
        "Acumatica Credential Tester",
        "Diagnostics",
        "diagnostics",
        handler="diagnostics test-credentials",
    ),
    ViewSpec(
        "payment-count-comparison",
        "Payment Count Comparison",
        "Diagnostics",
        "diagnostics",
        handler="diagnostics payment-count",
    ),
)


def build_registry() -> ViewRegistry:
    """Create a registry holding every console view."""
    registry = ViewRegistry()
    for spec in CONSOLE_VIEWS:
        registry.register(spec)
    return registry
