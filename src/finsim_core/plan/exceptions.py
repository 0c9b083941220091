# src/finsim_core/plan/exceptions.py
"""
Defines custom, diagnosable exceptions for loading plan documents.

`ParsingError` covers file-level problems (missing file, unreadable file, invalid
YAML/JSON, a root that is not a mapping). `SchemaValidationError` covers documents
that load fine but do not have the structure of a plan, as reported by Cerberus.
Both implement `get_diagnostic_report()` through the shared `DiagnosableError` base.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from ..errors import DiagnosableError, format_diagnostic_report


class BasePlanError(DiagnosableError):
    """A local, concrete base class for all plan loading errors."""
    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Generic Plan Loading Error",
            details=str(self),
            suggestion="Please check the format and content of the plan document.",
            context={}
        )


@dataclass(frozen=True)
class ParsingError(BasePlanError):
    """Raised for file-system issues or unreadable content while loading a plan."""
    details: str
    file_path: Optional[Path] = None

    def __str__(self):
        where = f" in file '{self.file_path}'" if self.file_path else ""
        return f"Plan parsing error{where}: {self.details}"

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Plan Parsing or File Error",
            details=self.details,
            suggestion="Ensure the file exists, is readable, and contains valid YAML or JSON.",
            context={'source_file': self.file_path}
        )


@dataclass(frozen=True)
class SchemaValidationError(BasePlanError):
    """
    Raised when a plan document is syntactically valid but does not conform to the
    plan schema (missing keys, unknown frequency, duplicate block ids, bad names).
    """
    errors: Dict[str, Any]
    file_path: Optional[Path] = None

    def _error_lines(self):
        return [f"  - Field '{field}': {messages}" for field, messages in sorted(self.errors.items())]

    def __str__(self):
        where = f" for file '{self.file_path}'" if self.file_path else ""
        return f"Plan schema validation failed{where}:\n" + "\n".join(self._error_lines())

    def get_diagnostic_report(self) -> str:
        details = (
            "The plan document does not conform to the required schema.\n"
            f"See details for {len(self.errors)} field(s) below:\n\n" + "\n".join(self._error_lines())
        )
        return format_diagnostic_report(
            error_type="Plan Schema Validation Error",
            details=details,
            suggestion=(
                "Correct the listed fields. Block ids must be unique, frequencies must be one of "
                "daily/monthly/yearly, dates must be YYYY-MM-DD, and input/export names must be "
                "valid identifiers (letters, digits and '_', not starting with a digit)."
            ),
            context={'source_file': self.file_path}
        )
