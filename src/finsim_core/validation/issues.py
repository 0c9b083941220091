# src/finsim_core/validation/issues.py
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)


class ValidationIssueLevel(Enum):
    """ERROR issues can stop a run (see `fail_on_validation_errors`); the others are advisory."""
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"

    def __str__(self):
        return self.value


@dataclass
class ValidationIssue:
    """
    One finding about a plan. `block_id` and `phase` say which program it is
    about. The global init program has a phase but no block; findings about a
    block's dates or exports have a block but no phase.
    """
    level: ValidationIssueLevel
    code: str
    message: str
    block_id: Optional[str] = None
    phase: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def location(self) -> str:
        """e.g. `salary/execution`, `salary`, `global_init`; `plan` when neither is set."""
        return "/".join(part for part in (self.block_id, self.phase) if part) or "plan"

    def __str__(self) -> str:
        text = f"{self.level} {self.code} at {self.location}: {self.message}"
        if self.details:
            text += " (" + ", ".join(f"{k}={v}" for k, v in sorted(self.details.items())) + ")"
        return text
