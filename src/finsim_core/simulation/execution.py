# src/finsim_core/simulation/execution.py
"""
Provides the primary public API functions for running simulations.

This module is a thin Facade over the internal services (`SimulationContext`,
`SimulationEngine`, `ProgramCache`, `PlanValidator`). It sets them up on behalf of
the caller, runs the plan, and returns a formal `SimulationResult`.

Failures of individual programs are part of a normal result, never exceptions.
Only failures of the run as a whole (a plan refused by validation, a bad
configuration, an internal error) surface as a single `SimulationRunError`, and
failures to load a plan file surface as a `PlanBuildError`.
"""
import logging
from datetime import date
from pathlib import Path
from typing import Callable, List, Optional, Union

from ..cache import ProgramCache
from ..errors import DiagnosableError, PlanBuildError, SimulationRunError, format_diagnostic_report
from ..plan import PlanDocument, PlanLoader
from ..validation import PlanValidationError, PlanValidator, ValidationIssueLevel
from .config import ConfigParsingError, SimulationConfig, parse_simulation_config
from .context import SimulationContext, SimulationState
from .engine import SimulationEngine
from .results import SimulationResult, Snapshot

logger = logging.getLogger(__name__)


def run_simulation(
    plan: PlanDocument,
    config: Optional[SimulationConfig] = None,
    cache: Optional[ProgramCache] = None,
    should_cancel: Optional[Callable[[], bool]] = None
) -> SimulationResult:
    """
    Simulates `plan` from its birth date to its end age and returns the result.

    Args:
        plan: A loaded `PlanDocument`.
        config: Run settings. When None, the plan's own `simulation:` settings are used.
        cache: An optional `ProgramCache` to reuse compiled programs across runs. When
               None (the default), a new cache is created for this run.
        should_cancel: Polled after every `config.chunk_days` simulated days. When it
                       returns True the run stops and the result is marked `cancelled`.

    Raises:
        SimulationRunError: The run could not be carried out, e.g. the plan has
                            validation errors and `fail_on_validation_errors` is set.
                            The original exception is chained for debugging.
    """
    effective_cache = cache if cache is not None else ProgramCache()

    try:
        effective_config = config if config is not None else parse_simulation_config(plan.raw_simulation_config)
        logger.info(f"--- Starting simulation for '{plan.name}' ---")

        issues = PlanValidator(plan).validate()
        for issue in issues:
            if issue.level == ValidationIssueLevel.INFO:
                logger.debug(str(issue))
            else:
                logger.warning(str(issue))
        if effective_config.fail_on_validation_errors and any(i.level == ValidationIssueLevel.ERROR for i in issues):
            raise PlanValidationError(issues)

        context = SimulationContext(plan=plan, config=effective_config, cache=effective_cache)
        engine = SimulationEngine(context)
        state = SimulationState()

        snapshots: List[Snapshot] = []
        cancelled = False
        for chunk in engine.iter_chunks(effective_config.chunk_days, state):
            snapshots.extend(chunk)
            if should_cancel is not None and should_cancel():
                cancelled = len(snapshots) < engine.total_days
                if cancelled:
                    logger.info(f"Simulation cancelled after {len(snapshots)} of {engine.total_days} day(s).")
                break

        result = SimulationResult(
            snapshots=tuple(snapshots),
            failures=tuple(state.failures),
            issues=tuple(issues),
            cancelled=cancelled,
            cache_stats=effective_cache.get_stats(),
        )
        logger.info(
            f"Simulation finished: {len(snapshots)} day(s), {len(state.failures)} program failure(s). "
            f"Cache stats: {result.cache_stats}"
        )
        return result

    except ConfigParsingError as e:
        logger.error(f"Invalid simulation configuration: {e}")
        report = format_diagnostic_report(
            error_type="Invalid Simulation Configuration",
            details=str(e),
            suggestion="Allowed settings are strict_numerics, fail_on_validation_errors and chunk_days (>= 1).",
            context={'source_file': plan.source_path}
        )
        raise SimulationRunError(report) from e

    except DiagnosableError as e:
        logger.error(f"A diagnosable error occurred during simulation: {e}")
        raise SimulationRunError(e.get_diagnostic_report()) from e

    except Exception as e:
        logger.critical(f"An unexpected internal error occurred during simulation: {e}", exc_info=True)
        report = format_diagnostic_report(
            error_type=f"An Unexpected Simulation Error Occurred ({type(e).__name__})",
            details=f"The simulator encountered an unexpected internal error: {e}",
            suggestion="This may be a bug. Review the traceback and consider filing a bug report.",
            context={}
        )
        raise SimulationRunError(report) from e


def load_plan(path: Union[str, Path], reference_date: Optional[date] = None) -> PlanDocument:
    """
    Loads a plan file, turning any loading failure into a `PlanBuildError` whose
    message is the diagnostic report.
    """
    try:
        return PlanLoader().load(path, reference_date=reference_date)
    except DiagnosableError as e:
        logger.error(f"Failed to load plan '{path}': {e}")
        raise PlanBuildError(e.get_diagnostic_report()) from e
    except OSError as e:
        report = format_diagnostic_report(
            error_type="Plan File Error",
            details=f"The plan file could not be read: {e}",
            suggestion="Ensure the path points to a readable YAML or JSON file.",
            context={'source_file': path}
        )
        raise PlanBuildError(report) from e


def run_plan_file(
    path: Union[str, Path],
    config: Optional[SimulationConfig] = None,
    reference_date: Optional[date] = None,
    should_cancel: Optional[Callable[[], bool]] = None
) -> SimulationResult:
    """Loads and simulates a plan file in one call."""
    plan = load_plan(path, reference_date=reference_date)
    return run_simulation(plan, config=config, should_cancel=should_cancel)
