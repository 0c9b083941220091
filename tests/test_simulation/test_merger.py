# tests/test_simulation/test_merger.py
import logging

import pytest

from finsim_core.simulation.merger import (
    parse_input_value,
    build_exec_context,
    build_init_context,
    resolve_export_names,
    apply_exports,
)


@pytest.mark.parametrize("raw, expected", [
    ("3000", 3000.0),
    (" 12.5 ", 12.5),
    (7, 7.0),
    ("", 0.0),
    (None, 0.0),
    ("abc", 0.0),
    ("inf", 0.0),
    ("nan", 0.0),
    ("5%", 5.0),
    ("3000 per month", 3000.0),
    ("1,000", 1.0),
    ("-2.5e1x", -25.0),
    ("+.5", 0.5),
    ("12.", 12.0),
    ("1e400", 0.0),
    ("$100", 0.0),
])
def test_parse_input_value(raw, expected):
    assert parse_input_value(raw) == expected


def test_exec_context_precedence():
    local = {"cash": 1.0, "helper": 2.0, "periods_from_start": 99.0}
    global_context = {"cash": 50.0}
    defaults = {"periods_from_start": 3.0, "total_periods": 12.0}
    merged = build_exec_context(local, global_context, defaults)
    assert merged == {"cash": 50.0, "helper": 2.0, "periods_from_start": 3.0, "total_periods": 12.0}


def test_init_context_inputs_override_defaults_and_globals():
    merged = build_init_context(
        {"salary": 1.0, "cash": 10.0},
        {"periods_from_start": 0.0, "total_periods": 12.0},
        {"salary": "3000", "bonus": "oops"},
    )
    assert merged == {"salary": 3000.0, "cash": 10.0, "periods_from_start": 0.0, "total_periods": 12.0, "bonus": 0.0}


def test_export_names_include_all_globals():
    names = resolve_export_names(("savings", "cash", "savings"), {"cash": 1.0, "debt": 2.0})
    assert names == ["savings", "cash", "debt"]


def test_pre_existing_global_is_overwritten_without_declared_export():
    """A local value with a global's name replaces that global even if it is not exported."""
    global_context = {"cash": 100.0}
    exec_context = build_exec_context({}, global_context, {})
    exec_context["cash"] = 5.0
    apply_exports(exec_context, global_context, resolve_export_names((), global_context))
    assert global_context == {"cash": 5.0}


def test_private_helpers_are_not_exported():
    global_context = {"cash": 100.0}
    exec_context = {"cash": 90.0, "fee": 10.0}
    apply_exports(exec_context, global_context, resolve_export_names((), global_context))
    assert global_context == {"cash": 90.0}


def test_missing_export_is_skipped(caplog):
    global_context = {}
    with caplog.at_level(logging.DEBUG, logger="finsim_core"):
        apply_exports({"a": 1.0}, global_context, ["a", "ghost"], block_label="b1")
    assert global_context == {"a": 1.0}
    assert any("ghost" in r.getMessage() for r in caplog.records)
