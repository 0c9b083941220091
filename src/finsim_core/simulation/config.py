# src/finsim_core/simulation/config.py
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

class ConfigParsingError(ValueError):
    """Custom exception for errors during simulation configuration parsing."""
    pass


@dataclass(frozen=True)
class SimulationConfig:
    """
    Run-wide switches.

    Attributes:
        strict_numerics: Treat a non-finite statement result as a statement failure
                         instead of storing 0.
        fail_on_validation_errors: Abort before simulating when the plan validator
                                   reports ERROR-level issues. Off by default: a plan
                                   with a broken formula still produces a result.
        chunk_days: Number of simulated days between cancellation checks.
    """
    strict_numerics: bool = False
    fail_on_validation_errors: bool = False
    chunk_days: int = 365


def parse_simulation_config(raw_config: Optional[Dict[str, Any]]) -> SimulationConfig:
    """Parses the optional `simulation:` mapping of a plan into a `SimulationConfig`."""
    if not raw_config:
        return SimulationConfig()
    try:
        unknown = set(raw_config) - {"strict_numerics", "fail_on_validation_errors", "chunk_days"}
        if unknown:
            raise ValueError(f"Unknown setting(s): {sorted(unknown)}")

        chunk_days = int(raw_config.get("chunk_days", 365))
        if chunk_days < 1:
            raise ValueError("chunk_days must be >= 1.")

        return SimulationConfig(
            strict_numerics=bool(raw_config.get("strict_numerics", False)),
            fail_on_validation_errors=bool(raw_config.get("fail_on_validation_errors", False)),
            chunk_days=chunk_days,
        )
    except (TypeError, ValueError) as e:
        raise ConfigParsingError(f"Failed to parse simulation configuration: {e}") from e


def add_years(start: date, years: int) -> date:
    """Same calendar day `years` later; Feb 29 becomes Feb 28 in non-leap years."""
    try:
        return start.replace(year=start.year + years)
    except ValueError:
        return start.replace(year=start.year + years, day=28)


def simulation_date_range(birth_date: date, end_age: int) -> Tuple[date, date]:
    """First and last simulated day, both inclusive."""
    return birth_date, add_years(birth_date, end_age)
