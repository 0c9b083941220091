# tests/test_simulation/test_engine.py
import logging
from datetime import date

import pytest

from finsim_core.cache import ProgramCache
from finsim_core.plan import Frequency
from finsim_core.simulation import (
    SimulationConfig,
    SimulationContext,
    SimulationEngine,
    SimulationState,
    BlockExecutionFailure,
    GlobalInitFailure,
)
from tests.conftest import make_block, make_plan


def build_engine(plan, **config_kwargs) -> SimulationEngine:
    context = SimulationContext(plan=plan, config=SimulationConfig(**config_kwargs), cache=ProgramCache())
    return SimulationEngine(context)


def snapshot_on(snapshots, day):
    return next(s for s in snapshots if s.date == day)


# --- Group 1: The daily loop ---

def test_one_snapshot_per_day_inclusive(compound_interest_plan):
    snapshots = build_engine(compound_interest_plan).execute()
    assert snapshots[0].date == date(2025, 1, 1)
    assert snapshots[-1].date == date(2026, 1, 1)
    assert len(snapshots) == 366


def test_compound_interest_end_to_end(compound_interest_plan):
    snapshots = build_engine(compound_interest_plan).execute()
    assert snapshot_on(snapshots, date(2025, 1, 14)).context["cash"] == 1000
    assert snapshot_on(snapshots, date(2025, 1, 15)).context["cash"] == pytest.approx(1100)
    assert snapshot_on(snapshots, date(2025, 2, 15)).context["cash"] == pytest.approx(1210)
    assert snapshots[-1].context["cash"] == pytest.approx(1210)


def test_block_locals_stay_private(compound_interest_plan):
    snapshots = build_engine(compound_interest_plan).execute()
    assert set(snapshots[-1].context) == {"cash"}


def test_snapshots_are_isolated_copies(compound_interest_plan):
    snapshots = build_engine(compound_interest_plan).execute()
    first = snapshots[0].context
    assert first["cash"] == 1000
    with pytest.raises(TypeError):
        first["cash"] = 0


def test_runs_are_deterministic(compound_interest_plan):
    first = build_engine(compound_interest_plan).execute()
    second = build_engine(compound_interest_plan).execute()
    assert [(s.date, dict(s.context)) for s in first] == [(s.date, dict(s.context)) for s in second]


def test_same_day_visibility_follows_declaration_order():
    """A block sees what earlier blocks exported today, and what later blocks exported yesterday."""
    producer = make_block("producer", start=date(2025, 1, 1), end=date(2025, 1, 3),
                          frequency=Frequency.DAILY, execution="value = periods_from_start + 1",
                          exports=["value"])
    reader = make_block("reader", start=date(2025, 1, 1), end=date(2025, 1, 3),
                        frequency=Frequency.DAILY, init="seen = 0", execution="seen = value",
                        exports=["seen"])

    forward = build_engine(make_plan([producer, reader], global_init="value = 0", end_age=0)).execute()
    assert forward[0].context["seen"] == 1

    backward_plan = make_plan([reader, producer], global_init="value = 0", end_age=0)
    assert build_engine(backward_plan).execute()[0].context["seen"] == 0


def test_periods_from_start_is_recomputed_each_firing():
    block = make_block(start=date(2025, 1, 15), end=date(2025, 4, 15), init="log = 0",
                       execution="log = log * 10 + periods_from_start", exports=["log"])
    snapshots = build_engine(make_plan([block])).execute()
    assert snapshot_on(snapshots, date(2025, 4, 15)).context["log"] == 123


def test_total_periods_available_to_programs():
    block = make_block(start=date(2025, 1, 15), end=date(2025, 12, 15), init="payment = 1200 / total_periods",
                       exports=["payment"])
    snapshots = build_engine(make_plan([block])).execute()
    assert snapshots[-1].context["payment"] == 100


def test_inputs_seed_init_context():
    block = make_block(start=date(2025, 1, 1), end=date(2025, 3, 1), inputs={"salary": "2500"},
                       execution="cash = cash + salary")
    snapshots = build_engine(make_plan([block], global_init="cash = 0")).execute()
    assert snapshots[-1].context["cash"] == 7500


def test_init_runs_once_even_without_firing():
    """Init happens on the first active day, which need not be a firing day."""
    block = make_block(start=date(2025, 1, 31), end=date(2025, 3, 31), init="cash = cash + 1",
                       execution="cash = cash + 100")
    snapshots = build_engine(make_plan([block], global_init="cash = 0")).execute()
    assert snapshot_on(snapshots, date(2025, 1, 31)).context["cash"] == 101
    assert snapshot_on(snapshots, date(2025, 2, 28)).context["cash"] == 101
    assert snapshot_on(snapshots, date(2025, 3, 31)).context["cash"] == 201


def test_block_outside_horizon_never_runs():
    block = make_block(start=date(2030, 1, 1), end=date(2030, 12, 1), execution="cash = 1")
    snapshots = build_engine(make_plan([block], global_init="cash = 0")).execute()
    assert snapshots[-1].context["cash"] == 0


def test_export_overwrites_global_without_declaration():
    block = make_block(start=date(2025, 1, 1), end=date(2025, 1, 1), frequency=Frequency.DAILY, execution="cash = 5")
    engine = build_engine(make_plan([block]))
    state = SimulationState(global_context={"cash": 100.0})
    engine.step_block(state, block, date(2025, 1, 1))
    assert state.global_context == {"cash": 5.0}


# --- Group 2: Failures ---

def test_partial_failure_applies_earlier_lines():
    block = make_block(start=date(2025, 1, 1), end=date(2025, 1, 1), frequency=Frequency.DAILY,
                       execution="a = 1\nb = nope\nc = 3", exports=["a", "c"])
    state = SimulationState()
    build_engine(make_plan([block], end_age=0)).execute(state)
    assert state.global_context == {"a": 1.0}
    assert len(state.failures) == 1
    failure = state.failures[0]
    assert isinstance(failure, BlockExecutionFailure)
    assert (failure.block_id, failure.phase, failure.date) == ("b1", "execution", date(2025, 1, 1))
    assert failure.original_error.line_number == 2


def test_failing_block_does_not_stop_others():
    broken = make_block("broken", start=date(2025, 1, 1), end=date(2025, 1, 5), frequency=Frequency.DAILY,
                        execution="x = undefined_thing")
    healthy = make_block("healthy", start=date(2025, 1, 1), end=date(2025, 1, 5), frequency=Frequency.DAILY,
                         execution="count = count + 1")
    state = SimulationState()
    snapshots = build_engine(make_plan([broken, healthy], global_init="count = 0")).execute(state)
    assert snapshot_on(snapshots, date(2025, 1, 5)).context["count"] == 5
    assert len(state.failures) == 5


@pytest.mark.parametrize("bad_program, bad_succeeds", [
    ("x = " + "(" * 400 + "1" + ")" * 400, False),
    ("x = " + " + ".join(["1"] * 1500), True),
])
def test_oversized_expression_only_affects_its_block(bad_program, bad_succeeds):
    bad = make_block("bad", start=date(2025, 1, 1), end=date(2025, 1, 1), frequency=Frequency.DAILY,
                     execution=bad_program, exports=["x"])
    good = make_block("good", start=date(2025, 1, 1), end=date(2025, 1, 1), frequency=Frequency.DAILY,
                      execution="n = n + 1")
    state = SimulationState()
    build_engine(make_plan([bad, good], global_init="n = 0", end_age=0)).execute(state)
    assert state.global_context["n"] == 1
    if bad_succeeds:
        assert state.global_context["x"] == 1500
        assert state.failures == []
    else:
        assert "x" not in state.global_context
        assert [f.block_id for f in state.failures] == ["bad"]


def test_first_failure_logged_as_error_then_debug(caplog):
    block = make_block(start=date(2025, 1, 1), end=date(2025, 1, 3), frequency=Frequency.DAILY,
                       execution="x = nope")
    with caplog.at_level(logging.DEBUG, logger="finsim_core"):
        build_engine(make_plan([block])).execute()
    block_records = [r for r in caplog.records if "Block 'b1' execution failed" in r.getMessage()]
    assert [r.levelno for r in block_records] == [logging.ERROR, logging.DEBUG, logging.DEBUG]


def test_global_init_failure_keeps_partial_state():
    state = SimulationState()
    snapshots = build_engine(make_plan(global_init="a = 1\nb = a +\nc = 2", end_age=0)).execute(state)
    assert dict(snapshots[0].context) == {"a": 1.0}
    assert isinstance(state.failures[0], GlobalInitFailure)
    assert "Global Init Program Failed" in state.failures[0].get_diagnostic_report()


def test_strict_numerics_records_failure():
    block = make_block(start=date(2025, 1, 1), end=date(2025, 1, 1), frequency=Frequency.DAILY,
                       execution="x = 1 / 0", exports=["x"])
    lenient_state, strict_state = SimulationState(), SimulationState()
    build_engine(make_plan([block], end_age=0)).execute(lenient_state)
    build_engine(make_plan([block], end_age=0), strict_numerics=True).execute(strict_state)
    assert lenient_state.global_context == {"x": 0.0}
    assert lenient_state.failures == []
    assert "x" not in strict_state.global_context
    assert len(strict_state.failures) == 1


def test_init_failure_reports_init_phase():
    block = make_block(start=date(2025, 1, 1), end=date(2025, 2, 1), init="rate = ghost",
                       execution="cash = cash + 1")
    state = SimulationState()
    build_engine(make_plan([block], global_init="cash = 0")).execute(state)
    assert [f.phase for f in state.failures] == ["init"]
    assert state.global_context["cash"] == 2


# --- Group 3: Incremental execution ---

def test_iter_chunks_splits_the_run(compound_interest_plan):
    chunks = list(build_engine(compound_interest_plan).iter_chunks(100))
    assert [len(c) for c in chunks] == [100, 100, 100, 66]


def test_iter_chunks_rejects_zero(compound_interest_plan):
    with pytest.raises(ValueError):
        list(build_engine(compound_interest_plan).iter_chunks(0))


def test_stopping_iteration_stops_the_run(compound_interest_plan):
    iterator = build_engine(compound_interest_plan).iter_snapshots()
    first_ten = [next(iterator) for _ in range(10)]
    iterator.close()
    assert first_ten[-1].date == date(2025, 1, 10)


def test_cache_compiles_each_program_once(compound_interest_plan):
    engine = build_engine(compound_interest_plan)
    engine.execute()
    stats = engine.context.cache.get_stats()
    assert stats["misses"] == 3
    assert stats["hits"] == 1
