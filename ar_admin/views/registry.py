"""
Permission-gated view router.

Each console panel is registered under the view key the web dashboard uses,
together with the permission it needs. Resolving a key checks the
permission before any panel code runs.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, List, Optional

from ar_admin.permissions import PermissionSet
from ar_admin.services.errors import PermissionDeniedError

logger = logging.getLogger(__name__)

DEFAULT_VIEWS = {
    "admin": "payment-analytics",
    "collector": "my-assignments",
}
FALLBACK_VIEW = "customers"


@dataclass(frozen=True)
class ViewSpec:
    """
    A routable view.

    Attributes:
        key: View key, e.g. ``sync-status``
        title: Navigation label
        group: Navigation group
        permission: Permission key gating the view
        action: Required action on that permission
        handler: Console command implementing the view (``"sync status"``),
            or None when the view only exists in the web dashboard
    """

    key: str
    title: str
    group: str
    permission: str
    action: str = "view"
    handler: Optional[str] = None


def default_view_for(role: str) -> str:
    return DEFAULT_VIEWS.get(role, FALLBACK_VIEW)


class ViewRegistry:
    """Ordered collection of view specs."""

    def __init__(self):
        self._views: "OrderedDict[str, ViewSpec]" = OrderedDict()

    def register(self, spec: ViewSpec) -> ViewSpec:
        if spec.key in self._views:
            raise ValueError(f"View '{spec.key}' is already registered")
        self._views[spec.key] = spec
        return spec

    def get(self, key: str) -> Optional[ViewSpec]:
        return self._views.get(key)

    def keys(self) -> List[str]:
        return list(self._views)

    def __contains__(self, key: str) -> bool:
        return key in self._views

    def __len__(self) -> int:
        return len(self._views)

    def resolve(
        self, key: Optional[str], permissions: PermissionSet, role: Optional[str] = None
    ) -> ViewSpec:
        """
        Find the view for ``key`` and check access.

        An unknown or empty key resolves to the role's default view.

        Raises:
            PermissionDeniedError: If the user may not open the view
            KeyError: If the role's default view is not registered
        """
        spec = self._views.get(key) if key else None
        if spec is None:
            fallback = default_view_for(role if role is not None else permissions.role)
            logger.debug(f"Unknown view '{key}', falling back to '{fallback}'")
            spec = self._views.get(fallback)
            if spec is None:
                raise KeyError(f"Default view '{fallback}' is not registered")

        if not permissions.has_permission(spec.permission, spec.action):
            raise PermissionDeniedError(spec.key, spec.permission, spec.action)

        return spec

    def accessible(self, permissions: PermissionSet) -> Dict[str, List[ViewSpec]]:
        """Views the user may open, grouped for navigation."""
        grouped: "OrderedDict[str, List[ViewSpec]]" = OrderedDict()
        for spec in self._views.values():
            if permissions.has_permission(spec.permission, spec.action):
                grouped.setdefault(spec.group, []).append(spec)
        return grouped
