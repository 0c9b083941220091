# tests/conftest.py
import textwrap
from datetime import date
from pathlib import Path

import pytest

from finsim_core.plan import BlockDefinition, Frequency, PlanDocument, PlanLoader


def make_block(
    block_id: str = "b1",
    start: date = date(2025, 1, 15),
    end: date = date(2025, 12, 15),
    frequency: Frequency = Frequency.MONTHLY,
    inputs=None,
    init: str = "",
    execution: str = "",
    exports=(),
    title: str = "",
) -> BlockDefinition:
    """Builds a BlockDefinition with test-friendly defaults."""
    return BlockDefinition(
        block_id=block_id,
        start_date=start,
        end_date=end,
        frequency=frequency,
        inputs=dict(inputs or {}),
        init_program=init,
        execution_program=execution,
        exports=tuple(exports),
        title=title,
    )


def make_plan(
    blocks=(),
    global_init: str = "",
    birth_date: date = date(2025, 1, 1),
    end_age: int = 1,
    name: str = "TestPlan",
    simulation=None,
) -> PlanDocument:
    """Builds a PlanDocument; the default horizon is 2025-01-01 to 2026-01-01."""
    return PlanDocument(
        name=name,
        global_init_program=global_init,
        blocks=tuple(blocks),
        birth_date=birth_date,
        end_age=end_age,
        raw_simulation_config=dict(simulation or {}),
    )


def write_plan_file(directory: Path, content: str, filename: str = "plan.yaml") -> Path:
    path = directory / filename
    path.write_text(textwrap.dedent(content))
    return path


@pytest.fixture
def plan_loader():
    return PlanLoader()


@pytest.fixture
def compound_interest_plan() -> PlanDocument:
    """One monthly block firing twice, compounding a global `cash` by 10% per firing."""
    block = make_block(
        block_id="interest",
        start=date(2025, 1, 15),
        end=date(2025, 2, 15),
        init="rate = 0.1",
        execution="cash = cash + cash * rate",
    )
    return make_plan(blocks=[block], global_init="cash = 1000")


@pytest.fixture
def salary_plan_yaml(tmp_path) -> Path:
    return write_plan_file(tmp_path, """
        plan_name: SalaryAndRent
        birth_date: 2025-01-01
        end_age: 1
        global_init: |
          cash = 500
          # savings account
          savings = 0
        blocks:
          - id: salary
            title: Salary
            start_date: 2025-01-01
            end_date: 2025-12-31
            frequency: monthly
            inputs:
              monthly_salary: 3000
            execution: |
              cash = cash + monthly_salary
          - id: rent
            start_date: "2025-01-05"
            end_date: "2025-12-31"
            frequency: monthly
            inputs: {rent: "1200"}
            execution: cash = cash - rent
            exports: "cash, rent"
    """)
