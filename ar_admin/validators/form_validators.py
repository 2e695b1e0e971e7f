"""Field checks for console forms.

Each check records its issues in a ValidationReport and returns whether the
value passed, so a form can run every check before reporting.
"""

import datetime as dt
from typing import Any, Iterable, Optional

from ar_admin.validators.validation_report import ValidationReport


class FormValidators:
    """Static field checks shared by the panel forms."""

    @staticmethod
    def validate_required(
        value: Any, field_name: str, report: ValidationReport
    ) -> bool:
        """Reject None, empty and whitespace-only values."""
        if value is None or (isinstance(value, str) and not value.strip()):
            report.add_error(field_name, "This field is required", value)
            return False
        return True

    @staticmethod
    def validate_email(
        value: Optional[str], field_name: str, report: ValidationReport
    ) -> bool:
        """
        Loose email check: one ``@`` with text on both sides.

        Args:
            value: Email address typed into the form
            field_name: Name of the field being validated
            report: ValidationReport to collect issues
        """
        if not FormValidators.validate_required(value, field_name, report):
            return False

        local, sep, domain = value.strip().partition("@")
        if not sep or not local or not domain or "@" in domain:
            report.add_error(field_name, "Please enter a valid email address", value)
            return False
        return True

    @staticmethod
    def validate_int_range(
        value: Any,
        field_name: str,
        report: ValidationReport,
        min_value: Optional[int] = None,
        max_value: Optional[int] = None,
    ) -> bool:
        """Integer within the inclusive bounds."""
        try:
            number = int(value)
        except (TypeError, ValueError):
            report.add_error(field_name, "Must be a whole number", value)
            return False

        if isinstance(value, float) and not value.is_integer():
            report.add_error(field_name, "Must be a whole number", value)
            return False
        if min_value is not None and number < min_value:
            report.add_error(field_name, f"Must be at least {min_value}", value)
            return False
        if max_value is not None and number > max_value:
            report.add_error(field_name, f"Must be at most {max_value}", value)
            return False
        return True

    @staticmethod
    def validate_date_order(
        start: Optional[dt.date],
        end: Optional[dt.date],
        report: ValidationReport,
        start_field: str = "start_date",
        end_field: str = "end_date",
    ) -> bool:
        """Both dates present and the end not before the start."""
        valid = True
        if start is None:
            report.add_error(start_field, "Start date is required")
            valid = False
        if end is None:
            report.add_error(end_field, "End date is required")
            valid = False
        if valid and end < start:
            report.add_error(
                end_field,
                "End date must be on or after the start date",
                end,
                context={start_field: start.isoformat()},
            )
            valid = False
        return valid

    @staticmethod
    def validate_choice(
        value: Any, field_name: str, choices: Iterable[Any], report: ValidationReport
    ) -> bool:
        options = list(choices)
        if value not in options:
            report.add_error(
                field_name,
                f"Must be one of: {', '.join(str(o) for o in options)}",
                value,
            )
            return False
        return True
