# tests/test_simulation/test_run_simulation.py
from concurrent.futures import ThreadPoolExecutor
from datetime import date

import numpy as np
import pytest

from finsim_core import (
    Frequency,
    SimulationConfig,
    SimulationRunError,
    PlanBuildError,
    run_simulation,
    run_plan_file,
    preview_block,
)
from finsim_core.cache import ProgramCache
from finsim_core.simulation import BlockExecutionFailure
from finsim_core.validation import PlanValidationError, ValidationIssueLevel
from tests.conftest import make_block, make_plan, write_plan_file


class TestRunSimulation:

    def test_result_contract(self, compound_interest_plan):
        result = run_simulation(compound_interest_plan)
        assert len(result.snapshots) == 366
        assert result.final_context["cash"] == pytest.approx(1210)
        assert result.failures == ()
        assert result.cancelled is False
        assert result.cache_stats == {"hits": 1, "misses": 3}
        assert result.snapshot_at(date(2025, 2, 15)).context["cash"] == pytest.approx(1210)
        assert result.snapshot_at(date(2030, 1, 1)) is None

    def test_program_failures_are_results_not_exceptions(self):
        block = make_block(execution="cash = unknown * 2")
        result = run_simulation(make_plan([block], global_init="cash = 1"))
        assert len(result.failures) == 12
        assert all(isinstance(f, BlockExecutionFailure) for f in result.failures)
        assert result.final_context["cash"] == 1

    def test_validation_issues_are_attached(self):
        block = make_block(execution="x = (1 +")
        result = run_simulation(make_plan([block]))
        assert any(i.code == "PROGRAM_SYNTAX" for i in result.issues)

    def test_fail_on_validation_errors(self):
        block = make_block(execution="x = (1 +")
        with pytest.raises(SimulationRunError) as exc_info:
            run_simulation(make_plan([block]), SimulationConfig(fail_on_validation_errors=True))
        assert isinstance(exc_info.value.__cause__, PlanValidationError)
        assert "Plan Validation Error" in str(exc_info.value)

    def test_plan_simulation_settings_are_used(self):
        block = make_block(start=date(2025, 1, 1), end=date(2025, 1, 1), frequency=Frequency.DAILY,
                           execution="x = 1 / 0", exports=["x"])
        plan = make_plan([block], end_age=0, simulation={"strict_numerics": True})
        result = run_simulation(plan)
        assert len(result.failures) == 1

    def test_bad_plan_settings_raise(self):
        plan = make_plan(simulation={"chunk_days": 0})
        with pytest.raises(SimulationRunError, match="Invalid Simulation Configuration"):
            run_simulation(plan)

    def test_cancellation_between_chunks(self, compound_interest_plan):
        result = run_simulation(
            compound_interest_plan,
            SimulationConfig(chunk_days=30),
            should_cancel=lambda: True,
        )
        assert result.cancelled is True
        assert len(result.snapshots) == 30

    def test_cancel_after_last_chunk_is_not_cancelled(self, compound_interest_plan):
        result = run_simulation(compound_interest_plan, SimulationConfig(chunk_days=366), should_cancel=lambda: True)
        assert result.cancelled is False
        assert len(result.snapshots) == 366

    def test_shared_cache_across_runs(self, compound_interest_plan):
        cache = ProgramCache()
        run_simulation(compound_interest_plan, cache=cache)
        second = run_simulation(compound_interest_plan, cache=cache)
        assert second.cache_stats["misses"] == 3
        assert len(cache) == 3

    def test_identical_plans_give_identical_results(self, compound_interest_plan):
        first = run_simulation(compound_interest_plan)
        second = run_simulation(compound_interest_plan)
        assert [(s.date, dict(s.context)) for s in first.snapshots] == \
               [(s.date, dict(s.context)) for s in second.snapshots]

    def test_concurrent_runs_of_different_plans_do_not_interfere(self, compound_interest_plan):
        # Both plans use `cash` and a block id of the same name; neither may see the other's values.
        spender = make_block("interest", start=date(2025, 1, 1), end=date(2025, 12, 31), frequency=Frequency.DAILY,
                             init="cost = 2", execution="cash = cash - cost\nspent = spent + cost",
                             exports=["spent"])
        spending_plan = make_plan([spender], global_init="cash = 5000\nspent = 0")

        def history(result):
            return [(s.date, dict(s.context)) for s in result.snapshots]

        expected_interest = history(run_simulation(compound_interest_plan))
        expected_spending = history(run_simulation(spending_plan))

        plans = [compound_interest_plan, spending_plan] * 4
        with ThreadPoolExecutor(max_workers=len(plans)) as pool:
            results = list(pool.map(run_simulation, plans))

        for plan, result in zip(plans, results):
            expected = expected_interest if plan is compound_interest_plan else expected_spending
            assert history(result) == expected
            assert result.failures == ()
        assert results[0].final_context["cash"] == pytest.approx(1210)
        assert results[1].final_context == {"cash": 5000 - 2 * 365, "spent": 2 * 365}


class TestSampling:

    def test_sample_keeps_first_and_period_starts(self, compound_interest_plan):
        result = run_simulation(compound_interest_plan)
        assert len(result.sample(Frequency.DAILY)) == 366
        monthly = result.sample(Frequency.MONTHLY)
        assert len(monthly) == 13
        assert all(s.date.day == 1 for s in monthly)
        yearly = result.sample(Frequency.YEARLY)
        assert [s.date for s in yearly] == [date(2025, 1, 1), date(2026, 1, 1)]

    def test_sample_includes_first_snapshot_off_boundary(self):
        result = run_simulation(make_plan(birth_date=date(2025, 1, 15)))
        monthly = result.sample(Frequency.MONTHLY)
        assert monthly[0].date == date(2025, 1, 15)
        assert monthly[1].date == date(2025, 2, 1)
        assert len(monthly) == 13

    def test_series(self, compound_interest_plan):
        result = run_simulation(compound_interest_plan)
        dates, values = result.series("cash - 1000 + missing", Frequency.MONTHLY)
        assert dates.dtype == np.dtype("datetime64[D]")
        assert dates[0] == np.datetime64("2025-01-01")
        np.testing.assert_allclose(values[:4], [0.0, 100.0, 210.0, 210.0])

    def test_series_with_rejected_expression_is_zeros(self, compound_interest_plan):
        result = run_simulation(compound_interest_plan)
        dates, values = result.series("cash[0]", Frequency.YEARLY)
        assert len(dates) == 2
        np.testing.assert_array_equal(values, np.zeros(2))

    def test_series_table_and_variable_names(self, compound_interest_plan):
        result = run_simulation(compound_interest_plan)
        table = result.series_table(["cash", "cash * 2"], Frequency.YEARLY)
        assert list(table) == ["date", "cash", "cash * 2"]
        np.testing.assert_allclose(table["cash * 2"], [2000.0, 2420.0])
        assert result.variable_names() == ["cash"]


class TestPlanFiles:

    def test_run_plan_file(self, salary_plan_yaml):
        result = run_plan_file(salary_plan_yaml)
        # Salary on the 1st, rent on the 5th, twelve months each.
        assert result.final_context["cash"] == pytest.approx(500 + 12 * 3000 - 12 * 1200)
        assert result.final_context["rent"] == 1200
        assert result.final_context["savings"] == 0

    def test_missing_plan_file(self, tmp_path):
        with pytest.raises(PlanBuildError, match="Plan file not found"):
            run_plan_file(tmp_path / "nope.yaml")

    def test_invalid_yaml_plan_file(self, tmp_path):
        path = write_plan_file(tmp_path, "birth_date: [unclosed\n")
        with pytest.raises(PlanBuildError, match="Invalid YAML syntax") as exc_info:
            run_plan_file(path)
        assert "FinSim diagnostic" in str(exc_info.value)


class TestPreview:

    def test_preview_rows(self):
        block = make_block(start=date(2025, 1, 15), end=date(2025, 3, 20), init="balance = start",
                           execution="balance = balance * 2")
        rows = preview_block(block, {"start": 100.0}, tracked=["balance"])
        assert [r.date for r in rows] == [date(2025, 1, 15), date(2025, 2, 15), date(2025, 3, 15)]
        assert [r.periods_from_start for r in rows] == [0, 1, 2]
        assert [r.values["balance"] for r in rows] == [200.0, 400.0, 800.0]

    def test_preview_does_not_modify_global_context(self):
        global_context = {"cash": 10.0}
        block = make_block(execution="cash = cash + 1")
        preview_block(block, global_context)
        assert global_context == {"cash": 10.0}

    def test_preview_reports_init_day_and_all_names(self):
        block = make_block(start=date(2025, 1, 31), end=date(2025, 2, 28), init="x = 1")
        rows = preview_block(block)
        assert [r.date for r in rows] == [date(2025, 1, 31)]
        assert set(rows[0].values) == {"x", "periods_from_start", "total_periods"}
