# src/finsim_core/simulation/engine.py

"""
Defines the `SimulationEngine`, the stateless service that advances a plan through
simulated time.

The engine holds no run state of its own. It reads the fixed inputs from a
`SimulationContext` and threads a `SimulationState` explicitly through every step,
so one engine can be driven day by day, in chunks, or to completion.
"""
import logging
from datetime import date, timedelta
from typing import Dict, Iterator, List, Optional

from ..language.exceptions import StatementError
from ..language.statements import StatementExecutor
from ..plan.definitions import BlockDefinition, PlanDocument
from .config import simulation_date_range
from .context import SimulationContext, SimulationState
from .exceptions import BlockExecutionFailure, GlobalInitFailure
from .merger import apply_exports, build_exec_context, build_init_context, resolve_export_names
from .results import Snapshot
from .scheduler import default_inputs, is_active, should_fire

logger = logging.getLogger(__name__)

INIT_PHASE = "init"
EXECUTION_PHASE = "execution"
GLOBAL_INIT_PHASE = "global_init"


class SimulationEngine:
    """
    A stateless service that runs the daily simulation loop.
    It operates on a given SimulationContext and a caller-visible SimulationState.
    """
    def __init__(self, context: SimulationContext):
        """
        Initializes the engine with the full context for a single simulation run.

        Args:
            context: The immutable SimulationContext object containing all inputs.
        """
        self.context: SimulationContext = context
        self.plan: PlanDocument = context.plan
        self.executor = StatementExecutor(strict_numerics=context.config.strict_numerics)
        self.start_date, self.end_date = simulation_date_range(self.plan.birth_date, self.plan.end_age)
        logger.debug(
            f"SimulationEngine initialized for '{self.plan.name}' "
            f"({self.start_date.isoformat()} to {self.end_date.isoformat()}, {len(self.plan.blocks)} block(s))."
        )

    @property
    def total_days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    def execute(self, state: Optional[SimulationState] = None) -> List[Snapshot]:
        """Runs the whole horizon and returns one snapshot per day."""
        return list(self.iter_snapshots(state))

    def iter_snapshots(self, state: Optional[SimulationState] = None) -> Iterator[Snapshot]:
        """
        Runs the global init program, then yields the snapshot of each simulated day
        as soon as that day is complete. Stopping iteration stops the run.
        """
        state = state if state is not None else SimulationState()
        self.run_global_init(state)

        day = self.start_date
        while day <= self.end_date:
            self.advance_day(state, day)
            yield Snapshot.capture(day, state.global_context)
            day += timedelta(days=1)

    def iter_chunks(self, chunk_days: int, state: Optional[SimulationState] = None) -> Iterator[List[Snapshot]]:
        """Groups `iter_snapshots` into lists of at most `chunk_days` snapshots."""
        if chunk_days < 1:
            raise ValueError("chunk_days must be >= 1.")
        chunk: List[Snapshot] = []
        for snapshot in self.iter_snapshots(state):
            chunk.append(snapshot)
            if len(chunk) == chunk_days:
                yield chunk
                chunk = []
        if chunk:
            yield chunk

    def run_global_init(self, state: SimulationState) -> None:
        """Runs the one-time global init program against the global context."""
        program = self.context.cache.get_program(self.plan.global_init_program)
        try:
            self.executor.run(program, state.global_context)
        except StatementError as e:
            self._record_failure(state, GlobalInitFailure(original_error=e), ("", GLOBAL_INIT_PHASE))
        logger.debug(f"Global init produced {len(state.global_context)} variable(s).")

    def advance_day(self, state: SimulationState, day: date) -> None:
        """Steps every block for `day`, in declaration order."""
        for block in self.plan.blocks:
            self.step_block(state, block, day)

    def step_block(self, state: SimulationState, block: BlockDefinition, day: date) -> None:
        """
        Initializes `block` on its first active day, then runs its execution program
        if it fires on `day`. Both phases export and persist their context.
        """
        if not is_active(day, block):
            return

        defaults = default_inputs(day, block)

        if not state.is_initialized(block.block_id):
            init_context = build_init_context(state.global_context, defaults, block.inputs)
            self._run_phase(state, block, INIT_PHASE, block.init_program, init_context, day)
            self._write_back(state, block, init_context)
            logger.debug(f"Block '{block.label}' initialized on {day.isoformat()}.")

        if should_fire(day, block):
            exec_context = build_exec_context(state.block_contexts[block.block_id], state.global_context, defaults)
            self._run_phase(state, block, EXECUTION_PHASE, block.execution_program, exec_context, day)
            self._write_back(state, block, exec_context)

    def _run_phase(
        self,
        state: SimulationState,
        block: BlockDefinition,
        phase: str,
        source: str,
        context: Dict[str, float],
        day: date
    ) -> None:
        program = self.context.cache.get_program(source)
        if program.is_empty:
            return
        try:
            self.executor.run(program, context)
        except StatementError as e:
            failure = BlockExecutionFailure(block_id=block.block_id, phase=phase, date=day, original_error=e)
            self._record_failure(state, failure, (block.block_id, phase))

    def _write_back(self, state: SimulationState, block: BlockDefinition, context: Dict[str, float]) -> None:
        export_names = resolve_export_names(block.exports, state.global_context)
        apply_exports(context, state.global_context, export_names, block.label)
        state.block_contexts[block.block_id] = context

    def _record_failure(self, state: SimulationState, failure, key) -> None:
        state.failures.append(failure)
        if key in state.reported_failures:
            logger.debug(str(failure))
            return
        state.reported_failures.add(key)
        logger.error(str(failure))
