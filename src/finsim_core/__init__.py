# src/finsim_core/__init__.py
import logging
from .log_config import setup_logging

setup_logging()
logger = logging.getLogger(__name__)
logger.info("FinSim Core package initialized.")

from .language import evaluate, run_program, parse_program
from .plan import BlockDefinition, Frequency, PlanDocument, PlanLoader
from .simulation import (
    SimulationConfig, SimulationResult, Snapshot, run_simulation, run_plan_file, load_plan, preview_block
)
from .validation import PlanValidator, ValidationIssue
from .errors import FinSimError, PlanBuildError, SimulationRunError

__all__ = [
    # Language
    "evaluate", "run_program", "parse_program",
    # Plan Data Structures
    "BlockDefinition", "Frequency", "PlanDocument", "PlanLoader",
    # Simulation
    "SimulationConfig", "SimulationResult", "Snapshot",
    "run_simulation", "run_plan_file", "load_plan", "preview_block",
    # Validation
    "PlanValidator", "ValidationIssue",
    # Top-Level Errors (Actionable Diagnostics)
    "FinSimError", "PlanBuildError", "SimulationRunError",
]
