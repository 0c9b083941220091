# src/finsim_core/simulation/context.py
"""
Defines the `SimulationContext` (the fixed inputs of a run) and the
`SimulationState` (everything a run mutates).
"""
from dataclasses import dataclass, field
from typing import Dict, List, Set, Tuple

from ..cache.service import ProgramCache
from ..errors import DiagnosableError
from ..plan.definitions import PlanDocument
from .config import SimulationConfig


@dataclass(frozen=True)
class SimulationContext:
    """
    An immutable container for the inputs of a single simulation run: the plan,
    the run configuration and the program cache. It is handed to the stateless
    `SimulationEngine`, which operates on it.
    """
    plan: PlanDocument
    config: SimulationConfig
    cache: ProgramCache


@dataclass
class SimulationState:
    """
    The mutable state of one run, passed explicitly through every engine step.

    Attributes:
        global_context: The shared variables. Names are added or overwritten, never removed.
        block_contexts: One persisted local context per block id; a key exists iff
                        that block has been initialized.
        failures: Every program failure recorded so far, in occurrence order.
    """
    global_context: Dict[str, float] = field(default_factory=dict)
    block_contexts: Dict[str, Dict[str, float]] = field(default_factory=dict)
    failures: List[DiagnosableError] = field(default_factory=list)
    reported_failures: Set[Tuple[str, str]] = field(default_factory=set)

    def is_initialized(self, block_id: str) -> bool:
        return block_id in self.block_contexts
