"""Form validation for console inputs."""

from ar_admin.validators.form_validators import FormValidators
from ar_admin.validators.validation_report import (
    ValidationIssue,
    ValidationReport,
    ValidationSeverity,
)

__all__ = [
    "FormValidators",
    "ValidationReport",
    "ValidationIssue",
    "ValidationSeverity",
]
