# src/finsim_core/simulation/preview.py
"""
Runs a single block on its own, for editors that show what a block does before it
is placed in a plan.
"""
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional

from ..cache import ProgramCache
from ..plan.definitions import BlockDefinition, PlanDocument
from .config import SimulationConfig
from .context import SimulationContext, SimulationState
from .engine import SimulationEngine
from .scheduler import periods_from_start, should_fire

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlockPreviewRow:
    """The block's execution context right after one activation."""
    date: date
    periods_from_start: int
    values: Mapping[str, float]


def preview_block(
    block: BlockDefinition,
    global_context: Optional[Mapping[str, float]] = None,
    tracked: Iterable[str] = (),
    config: Optional[SimulationConfig] = None
) -> List[BlockPreviewRow]:
    """
    Simulates `block` alone over its own date range, starting from a copy of
    `global_context`, and returns one row for its init day and one per firing day.

    Args:
        block: The block to preview.
        global_context: Global values the block would see; never modified.
        tracked: Names to report. When empty, every name of the block's context is reported.
        config: Run settings; only `strict_numerics` matters here.
    """
    config = config if config is not None else SimulationConfig()
    tracked = tuple(tracked)

    preview_plan = PlanDocument(
        name=f"preview:{block.block_id}",
        global_init_program="",
        blocks=(block,),
        birth_date=block.start_date,
        end_age=0,
    )
    engine = SimulationEngine(SimulationContext(plan=preview_plan, config=config, cache=ProgramCache()))
    state = SimulationState(global_context=dict(global_context or {}))

    rows: List[BlockPreviewRow] = []
    day = block.start_date
    while day <= block.end_date:
        first_activation = not state.is_initialized(block.block_id)
        engine.step_block(state, block, day)
        if first_activation or should_fire(day, block):
            local = state.block_contexts[block.block_id]
            names = tracked or tuple(local)
            rows.append(BlockPreviewRow(
                date=day,
                periods_from_start=periods_from_start(day, block),
                values=MappingProxyType({name: local.get(name, 0.0) for name in names}),
            ))
        day += timedelta(days=1)

    for failure in state.failures:
        logger.debug(f"Preview of '{block.label}': {failure}")
    return rows
