# src/finsim_core/simulation/__init__.py
from .exceptions import (
    GlobalInitFailure,
    BlockExecutionFailure,
)
from .config import SimulationConfig, ConfigParsingError, parse_simulation_config
from .context import SimulationContext, SimulationState
from .engine import SimulationEngine
from .results import Snapshot, SimulationResult
from .preview import BlockPreviewRow, preview_block
from .execution import run_simulation, run_plan_file, load_plan

__all__ = [
    # Exceptions
    "GlobalInitFailure",
    "BlockExecutionFailure",
    "ConfigParsingError",
    # Configuration & State
    "SimulationConfig",
    "parse_simulation_config",
    "SimulationContext",
    "SimulationState",
    # Core Classes
    "SimulationEngine",
    "Snapshot",
    "SimulationResult",
    "BlockPreviewRow",
    "preview_block",
    "run_simulation",
    "run_plan_file",
    "load_plan",
]
