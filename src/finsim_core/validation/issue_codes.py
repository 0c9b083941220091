# src/finsim_core/validation/issue_codes.py
import logging
from enum import Enum

logger = logging.getLogger(__name__)


class PlanIssueCode(Enum):
    """
    Registry of plan validation issue codes and their message templates.
    Each enum member's value is a tuple: (code_str, message_template_str).
    """

    # --- Block Calendar Issues ---
    BLOCK_DATE_ORDER = ("BLOCK_DATE_ORDER", "Block '{block_id}' ends on {end_date}, before its start date {start_date}; it will never run.")
    BLOCK_OUTSIDE_HORIZON = ("BLOCK_OUTSIDE_HORIZON", "Block '{block_id}' runs from {start_date} to {end_date}, outside the simulated range {horizon_start} to {horizon_end}.")
    BLOCK_MONTHLY_SKIP = ("BLOCK_MONTHLY_SKIP", "Monthly block '{block_id}' starts on day {day} of the month and will not fire in months shorter than that.")

    # --- Program Issues ---
    PROGRAM_SYNTAX = ("PROGRAM_SYNTAX", "The {phase} program has an invalid line {line_number}: {error}")
    EXPORT_NEVER_ASSIGNED = ("EXPORT_NEVER_ASSIGNED", "Block '{block_id}' exports '{name}', but none of its inputs or programs assign it.")
    UNRESOLVED_NAME = ("UNRESOLVED_NAME", "The {phase} program reads '{name}', which no input, program or export defines at that point.")

    # --- Data-Flow Issues ---
    FORWARD_REFERENCE = ("FORWARD_REFERENCE", "Block '{block_id}' reads '{name}', which is first exported by the later block '{producer}'; it sees the value of the previous day.")
    DATAFLOW_CYCLE = ("DATAFLOW_CYCLE", "Blocks depend on each other in a cycle: {cycle}.")

    @property
    def code(self) -> str:
        return self.value[0]

    @property
    def template(self) -> str:
        return self.value[1]

    def format_message(self, **kwargs) -> str:
        """Formats the message template with provided keyword arguments."""
        try:
            return self.template.format(**kwargs)
        except KeyError as e:
            logger.error(f"Missing key {e} for formatting message template of {self.name}: '{self.template}'. Provided args: {kwargs}")
            return f"Error formatting message for {self.code}: Missing key {e}. Template: '{self.template}' Args: {kwargs}"
