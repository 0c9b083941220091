# src/finsim_core/simulation/exceptions.py
"""
Defines custom, diagnosable exceptions for failures that occur while a plan is
being simulated.

None of these abort a run. The engine records them on the result and carries on:
a failing program only loses the lines after its failing statement, and every other
block, day and program is unaffected. They exist so that callers get the failing
block, phase and date together with the root cause, formatted like every other
diagnosable error in the package.
"""
from dataclasses import dataclass
import datetime

from ..errors import DiagnosableError, format_diagnostic_report
from ..language.exceptions import StatementError


@dataclass()
class GlobalInitFailure(DiagnosableError):
    """The one-time global init program failed; the run continues with its partial state."""
    original_error: StatementError

    def __str__(self):
        return f"Global init failed: {self.original_error}"

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Global Init Program Failed",
            details=(
                "The global init program stopped at the line below. Variables assigned before it "
                "are available to the simulation; later ones are missing.\n\n"
                f"--- Details of the Root Cause ---\n{self.original_error.get_diagnostic_report()}"
            ),
            suggestion="Fix the failing line of the global init program.",
            context={'phase': 'global_init', 'line_number': self.original_error.line_number}
        )


@dataclass()
class BlockExecutionFailure(DiagnosableError):
    """
    Wraps a statement failure with the block, phase ('init' or 'execution') and
    simulated date in which it occurred.
    """
    block_id: str
    phase: str
    date: datetime.date
    original_error: StatementError

    def __str__(self):
        return f"Block '{self.block_id}' {self.phase} failed on {self.date.isoformat()}: {self.original_error}"

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Block Program Failed",
            details=(
                f"The {self.phase} program of block '{self.block_id}' failed on {self.date.isoformat()}.\n"
                "Lines before the failing one were applied and exported; later lines were skipped.\n\n"
                f"--- Details of the Root Cause ---\n{self.original_error.get_diagnostic_report()}"
            ),
            suggestion="Fix the failing line. Other blocks and later days were simulated normally.",
            context={
                'block_id': self.block_id,
                'phase': self.phase,
                'date': self.date.isoformat(),
                'line_number': self.original_error.line_number,
            }
        )
