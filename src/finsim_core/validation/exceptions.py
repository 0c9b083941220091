# src/finsim_core/validation/exceptions.py
"""
Defines `PlanValidationError`, raised when a run is configured to refuse plans
with ERROR-level validation issues.
"""
from typing import List

from .issues import ValidationIssue, ValidationIssueLevel
from ..errors import DiagnosableError, format_diagnostic_report


class PlanValidationError(DiagnosableError):
    """
    A container for the ERROR-level `ValidationIssue` objects of one validation pass,
    formatted into a single diagnostic report.
    """
    def __init__(self, issues: List[ValidationIssue]):
        """
        Args:
            issues: Every issue found by the PlanValidator; only ERROR-level ones are kept.
        """
        self.issues: List[ValidationIssue] = [
            issue for issue in issues if issue.level == ValidationIssueLevel.ERROR
        ]
        if not self.issues:
            summary_message = "PlanValidationError was raised with no error-level issues."
        else:
            summary_message = (
                f"Plan validation failed with {len(self.issues)} error(s):\n"
                + "\n".join(f"  - {issue}" for issue in self.issues)
            )
        super().__init__(summary_message)

    def get_diagnostic_report(self) -> str:
        details = (
            f"The plan contains {len(self.issues)} error(s) and the run is configured "
            "to stop on validation errors. See details below:\n\n"
            + "\n".join(f"  - {issue}" for issue in self.issues)
        )
        context = {}
        if self.issues:
            first_issue = self.issues[0]
            context['block_id'] = first_issue.block_id
            context['phase'] = first_issue.phase
            context['source_file'] = first_issue.details.get('source_path')

        return format_diagnostic_report(
            error_type="Plan Validation Error",
            details=details,
            suggestion=(
                "Correct the listed errors, or run with fail_on_validation_errors disabled "
                "to simulate anyway (failing programs are then reported on the result)."
            ),
            context=context
        )
