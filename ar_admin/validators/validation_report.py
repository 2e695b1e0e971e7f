"""Collects form validation issues so a panel can show all of them at once."""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, List, Optional

from pydantic import ValidationError


class ValidationSeverity(IntEnum):
    """Severity levels for validation issues."""

    INFO = 1
    WARNING = 2
    ERROR = 3


@dataclass
class ValidationIssue:
    """A single problem with one form field.

    Attributes:
        severity: The severity level of the issue
        field: Form field the issue belongs to
        message: Human-readable description
        value: The offending value
        context: Optional extra information (e.g. form name)
    """

    severity: ValidationSeverity
    field: str
    message: str
    value: Any = None
    context: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        context_str = ""
        if self.context:
            context_parts = [f"{k}={v}" for k, v in self.context.items()]
            context_str = f" ({', '.join(context_parts)})"
        return f"[{self.severity.name}] {self.field}: {self.message}{context_str}"


class ValidationReport:
    """
    Accumulates issues found while checking a form.

    Example:
        >>> report = ValidationReport()
        >>> report.add_error("email", "Email is required", "")
        >>> report.is_valid()
        False
    """

    def __init__(self) -> None:
        self.issues: List[ValidationIssue] = []

    def _count(self, severity: ValidationSeverity) -> int:
        return sum(1 for issue in self.issues if issue.severity == severity)

    @property
    def error_count(self) -> int:
        return self._count(ValidationSeverity.ERROR)

    @property
    def warning_count(self) -> int:
        return self._count(ValidationSeverity.WARNING)

    @property
    def info_count(self) -> int:
        return self._count(ValidationSeverity.INFO)

    def is_valid(self) -> bool:
        """True when there are no errors; warnings do not count."""
        return self.error_count == 0

    def has_errors(self) -> bool:
        return self.error_count > 0

    def _add(
        self,
        severity: ValidationSeverity,
        field: str,
        message: str,
        value: Any,
        context: Optional[Dict[str, Any]],
    ) -> None:
        self.issues.append(ValidationIssue(severity, field, message, value, context))

    def add_error(
        self,
        field: str,
        message: str,
        value: Any = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._add(ValidationSeverity.ERROR, field, message, value, context)

    def add_warning(
        self,
        field: str,
        message: str,
        value: Any = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._add(ValidationSeverity.WARNING, field, message, value, context)

    def add_info(
        self,
        field: str,
        message: str,
        value: Any = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._add(ValidationSeverity.INFO, field, message, value, context)

    def add_model_errors(self, error: ValidationError) -> None:
        """Record each error of a pydantic ValidationError against its field."""
        for detail in error.errors():
            location = ".".join(str(part) for part in detail.get("loc", ())) or "form"
            self.add_error(
                location, detail.get("msg", "Invalid value"), detail.get("input")
            )

    def get_errors(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == ValidationSeverity.ERROR]

    def get_warnings(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == ValidationSeverity.WARNING]

    def merge(self, other: "ValidationReport") -> None:
        self.issues.extend(other.issues)

    def summary(self) -> str:
        """Counts by severity, e.g. ``2 error(s), 1 warning(s)``."""
        parts = []
        if self.error_count > 0:
            parts.append(f"{self.error_count} error(s)")
        if self.warning_count > 0:
            parts.append(f"{self.warning_count} warning(s)")
        if self.info_count > 0:
            parts.append(f"{self.info_count} info message(s)")
        return ", ".join(parts) if parts else "No issues found"

    def format(self) -> str:
        """Multi-line listing of every issue grouped by severity."""
        if not self.issues:
            return "Validation successful - no issues found"

        lines = [f"Validation Report - {self.summary()}"]
        for severity, title in (
            (ValidationSeverity.ERROR, "ERRORS"),
            (ValidationSeverity.WARNING, "WARNINGS"),
            (ValidationSeverity.INFO, "INFO"),
        ):
            group = [i for i in self.issues if i.severity == severity]
            if group:
                lines.append(f"{title}:")
                lines.extend(f"  - {issue}" for issue in group)
        return "\n".join(lines)
