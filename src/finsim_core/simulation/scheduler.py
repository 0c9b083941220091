# src/finsim_core/simulation/scheduler.py
"""
Calendar rules deciding when a block is active, when it fires, and how many of its
periods have elapsed.

Everything here works on `datetime.date` values (year, month, day) and never on
timestamps, so results cannot drift with time zones or daylight saving. Period
counts are always recomputed from the calendar difference to the start date.
"""
from datetime import date
from typing import Dict

from ..plan.definitions import BlockDefinition, Frequency

PERIODS_FROM_START = "periods_from_start"
TOTAL_PERIODS = "total_periods"


def _period_difference(start: date, end: date, frequency: Frequency) -> int:
    if frequency == Frequency.DAILY:
        return (end - start).days
    if frequency == Frequency.MONTHLY:
        return (end.year - start.year) * 12 + (end.month - start.month)
    return end.year - start.year


def is_active(day: date, block: BlockDefinition) -> bool:
    return block.start_date <= day <= block.end_date


def should_fire(day: date, block: BlockDefinition) -> bool:
    """
    Monthly blocks fire on the start date's day of month, so a block starting on
    the 31st does not fire in shorter months.
    """
    if not is_active(day, block):
        return False
    if block.frequency == Frequency.DAILY:
        return True
    if block.frequency == Frequency.MONTHLY:
        return day.day == block.start_date.day
    return day.day == block.start_date.day and day.month == block.start_date.month


def periods_from_start(day: date, block: BlockDefinition) -> int:
    return _period_difference(block.start_date, day, block.frequency)


def total_periods(block: BlockDefinition) -> int:
    """Number of periods in the block's range, counting both the start and end period."""
    return _period_difference(block.start_date, block.end_date, block.frequency) + 1


def default_inputs(day: date, block: BlockDefinition) -> Dict[str, float]:
    """The values injected into every activation of `block` on `day`."""
    return {
        PERIODS_FROM_START: float(periods_from_start(day, block)),
        TOTAL_PERIODS: float(total_periods(block)),
    }
