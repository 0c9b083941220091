# src/finsim_core/errors.py
"""
Error types shared by every FinSim subsystem, and the one formatter that turns
an error into the report shown to the person editing the plan.
"""
import logging
from typing import Any, Dict, Protocol, abstractmethod
from typing import runtime_checkable

logger = logging.getLogger(__name__)


class FinSimError(Exception):
    """Root of the errors that leave the public API."""
    pass

class PlanBuildError(FinSimError):
    """A plan file could not be read, parsed or accepted by the schema. The message is a report."""
    pass

class SimulationRunError(FinSimError):
    """
    A run could not be carried out at all, for example because validation refused
    the plan. A failing block or global init program is not a reason to raise this;
    those failures are listed on the `SimulationResult`.
    """
    pass


@runtime_checkable
class Diagnosable(Protocol):
    """Anything that can describe itself with `format_diagnostic_report`."""
    def get_diagnostic_report(self) -> str:
        ...

class DiagnosableError(Exception, Diagnosable):
    """
    Base of the internal exceptions that carry a report: language errors, plan
    loading errors, program failures and validation refusals. Catch this class,
    not `Diagnosable`, since a Protocol cannot appear in an `except` clause.
    """
    @abstractmethod
    def get_diagnostic_report(self) -> str:
        raise NotImplementedError


# Context keys in report order, with the label each is printed under.
_CONTEXT_LABELS = (
    ('block_id', "Block"),
    ('phase', "Phase"),
    ('date', "Date"),
    ('source_file', "Plan file"),
    ('line_number', "Line"),
    ('user_input', "Expression"),
)
_LABEL_WIDTH = 12
_RULE = "-" * 72


def format_diagnostic_report(
    error_type: str,
    details: str,
    suggestion: str,
    context: Dict[str, Any]
) -> str:
    """
    Renders a report: a title line, the known location of the problem, what went
    wrong, and what to change.

    Args:
        error_type: Short title, e.g. "Unbound Variable".
        details: What went wrong; may span several lines.
        suggestion: What to change. Omitted when empty.
        context: Location of the problem. Recognised keys are `block_id`, `phase`,
                 `date`, `source_file`, `line_number` and `user_input`; missing or
                 empty values are left out.
    """
    lines = ["", _RULE, f"FinSim diagnostic: {error_type}", _RULE]
    for key, label in _CONTEXT_LABELS:
        value = context.get(key)
        if not value:
            continue
        shown = f"'{value}'" if key == 'user_input' else value
        lines.append(f"  {label:<{_LABEL_WIDTH}}{shown}")

    lines.append("")
    lines.append("What went wrong:")
    lines.extend(f"  {line}" for line in details.splitlines())

    if suggestion:
        lines.append("")
        lines.append("How to fix it:")
        lines.extend(f"  {line}" for line in suggestion.splitlines())

    lines.append(_RULE)
    return "\n".join(lines)
