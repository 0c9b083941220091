# src/finsim_core/plan/definitions.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

# The classes in this module are the contract between the PlanLoader and the
# simulation. The simulation never mutates them; all run state lives elsewhere.


class Frequency(Enum):
    """The cadence at which a block's execution program fires."""
    DAILY = "daily"
    MONTHLY = "monthly"
    YEARLY = "yearly"

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class BlockDefinition:
    """
    One time-bounded unit of financial logic.

    `inputs` keeps the raw text the user typed; it is converted to numbers each
    time the block is initialized. `start_date` and `end_date` are both inclusive.
    """
    block_id: str
    start_date: date
    end_date: date
    frequency: Frequency
    inputs: Mapping[str, str] = field(default_factory=dict)
    init_program: str = ""
    execution_program: str = ""
    exports: Tuple[str, ...] = ()
    title: str = ""

    @property
    def label(self) -> str:
        """Human-readable name for logs and reports."""
        return f"{self.title} ({self.block_id})" if self.title else self.block_id


@dataclass(frozen=True)
class PlanDocument:
    """
    A complete simulation input: the global init program, the blocks in the order
    they run each day, and the simulated age range.
    """
    name: str
    global_init_program: str
    blocks: Tuple[BlockDefinition, ...]
    birth_date: date
    end_age: int
    source_path: Optional[Path] = None
    raw_simulation_config: Dict[str, Any] = field(default_factory=dict)
