"""Permission-gated view routing."""

from ar_admin.views.catalog import CONSOLE_VIEWS, build_registry
from ar_admin.views.registry import (
    DEFAULT_VIEWS,
    FALLBACK_VIEW,
    ViewRegistry,
    ViewSpec,
    default_view_for,
)

__all__ = [
    "CONSOLE_VIEWS",
    "DEFAULT_VIEWS",
    "FALLBACK_VIEW",
    "ViewRegistry",
    "ViewSpec",
    "build_registry",
    "default_view_for",
]
