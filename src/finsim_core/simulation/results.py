# src/finsim_core/simulation/results.py
"""
Defines the immutable contracts for simulation output.

A `Snapshot` is the global context as it stood at the end of one simulated day.
The `SimulationResult` bundles the ordered snapshots with the failures and
validation issues collected during the run, and offers read-only sampling helpers
for chart and report consumers.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from ..errors import DiagnosableError
from ..language.evaluator import ExpressionEvaluator, compile_expression, finite_or_zero
from ..language.exceptions import ExpressionSyntaxError, SanitizationViolation
from ..plan.definitions import Frequency
from ..validation.issues import ValidationIssue

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    """
    The global context at the end of `date`. The context is a read-only view over a
    private copy, so later changes to the live global context cannot alter it.
    """
    date: date
    context: Mapping[str, float]

    @classmethod
    def capture(cls, day: date, global_context: Mapping[str, float]) -> "Snapshot":
        # Values are floats, so a copy of the mapping is a deep copy.
        return cls(date=day, context=MappingProxyType(dict(global_context)))


def _is_period_start(day: date, frequency: Frequency) -> bool:
    if frequency == Frequency.DAILY:
        return True
    if frequency == Frequency.MONTHLY:
        return day.day == 1
    return day.day == 1 and day.month == 1


@dataclass(frozen=True)
class SimulationResult:
    """
    The user-facing result of `run_simulation`.

    Attributes:
        snapshots: One snapshot per simulated day, in date order.
        failures: Program failures recorded during the run (the run itself continued).
        issues: Plan validation issues found before the run.
        cancelled: True when the caller stopped the run early; `snapshots` then ends
                   at the last completed chunk.
        cache_stats: Program cache hit/miss counters.
    """
    snapshots: Tuple[Snapshot, ...]
    failures: Tuple[DiagnosableError, ...] = ()
    issues: Tuple[ValidationIssue, ...] = ()
    cancelled: bool = False
    cache_stats: Dict[str, int] = field(default_factory=dict)

    @property
    def final_context(self) -> Mapping[str, float]:
        return self.snapshots[-1].context if self.snapshots else MappingProxyType({})

    def variable_names(self) -> List[str]:
        """All global variable names, in the order they first appeared."""
        names: Dict[str, None] = {}
        for snapshot in self.snapshots:
            for name in snapshot.context:
                names.setdefault(name)
        return list(names)

    def snapshot_at(self, day: date) -> Optional[Snapshot]:
        if not self.snapshots:
            return None
        index = (day - self.snapshots[0].date).days
        if 0 <= index < len(self.snapshots):
            return self.snapshots[index]
        return None

    def sample(self, frequency: Frequency = Frequency.DAILY) -> List[Snapshot]:
        """
        Keeps the first snapshot plus every snapshot that starts a period of
        `frequency` (day 1 of a month, January 1st of a year).
        """
        return [
            snapshot for index, snapshot in enumerate(self.snapshots)
            if index == 0 or _is_period_start(snapshot.date, frequency)
        ]

    def series(self, expression: str, frequency: Frequency = Frequency.DAILY) -> Tuple[np.ndarray, np.ndarray]:
        """
        Evaluates a read-only expression (e.g. "cash + investments - debts") on every
        sampled snapshot. Variables that do not exist yet count as 0, and an expression
        that cannot be compiled yields a series of zeros.

        Returns:
            A `datetime64[D]` array of dates and a float array of values.
        """
        sampled = self.sample(frequency)
        dates = np.array([s.date.isoformat() for s in sampled], dtype="datetime64[D]")
        values = np.zeros(len(sampled), dtype=float)
        if not expression or not expression.strip():
            return dates, values

        try:
            node = compile_expression(expression)
        except (SanitizationViolation, ExpressionSyntaxError) as e:
            logger.warning(f"Series expression rejected, returning zeros: {e}")
            return dates, values

        evaluator = ExpressionEvaluator(allow_unbound=True)
        for index, snapshot in enumerate(sampled):
            raw = evaluator.evaluate_node(node, snapshot.context, expression)
            values[index] = finite_or_zero(raw, expression, strict=False)
        return dates, values

    def series_table(self, expressions: Sequence[str], frequency: Frequency = Frequency.DAILY) -> Dict[str, np.ndarray]:
        """Several series sharing one date axis, keyed by expression, plus a 'date' column."""
        table: Dict[str, np.ndarray] = {}
        for expression in expressions:
            dates, values = self.series(expression, frequency)
            table.setdefault("date", dates)
            table[expression] = values
        if "date" not in table:
            table["date"] = np.array([s.date.isoformat() for s in self.sample(frequency)], dtype="datetime64[D]")
        return table
