"""Collector models."""

import datetime as dt
from typing import Any, Optional

from pydantic import field_validator

from ar_admin.models.base import ServerRecord


class Collector(ServerRecord):
    """One entry of ``get_available_collectors``."""

    id: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.full_name or self.email or self.id


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _to_int(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


class CollectorProgressPoint(ServerRecord):
    """One day of ``get_collector_progress``.

    The RPC returns numerics as strings; values that do not parse become 0.
    """

    date: dt.date
    closed_amount: float = 0.0
    closed_count: int = 0
    red_status_count: int = 0
    no_change_count: int = 0
    total_assigned: int = 0

    @field_validator("closed_amount", mode="before")
    @classmethod
    def coerce_amount(cls, v: Any) -> float:
        return _to_float(v)

    @field_validator(
        "closed_count",
        "red_status_count",
        "no_change_count",
        "total_assigned",
        mode="before",
    )
    @classmethod
    def coerce_count(cls, v: Any) -> int:
        return _to_int(v)
