# src/finsim_core/simulation/merger.py
"""
Builds the context a block program runs in, and writes its results back.

Three scopes meet on every activation: the block's own persisted variables, the
global context, and the default inputs of the day. Afterwards the export names are
copied to the global context and the whole execution context becomes the block's
new local context, so private helper variables survive to the next firing.

All functions take and return plain dictionaries; none of them holds state.
"""
import logging
import re
from typing import Dict, Iterable, List, Mapping, MutableMapping

import numpy as np

logger = logging.getLogger(__name__)

LEADING_NUMBER_REGEX = re.compile(r"^\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def parse_input_value(raw) -> float:
    """
    Reads the number a block input starts with: `"5%"` is 5, `"3000 per month"` is
    3000 and `"1,000"` is 1. Text that does not start with a number becomes 0.
    """
    if raw is None:
        return 0.0
    match = LEADING_NUMBER_REGEX.match(str(raw))
    if match is None:
        logger.debug(f"Block input '{raw}' is not numeric; using 0.")
        return 0.0
    value = float(match.group(0))
    return value if np.isfinite(value) else 0.0


def build_exec_context(
    block_local: Mapping[str, float],
    global_context: Mapping[str, float],
    defaults: Mapping[str, float]
) -> Dict[str, float]:
    """
    Later scopes win: global values replace stale block-local copies of the same
    name, and the default inputs of the day replace both.
    """
    return {**block_local, **global_context, **defaults}


def build_init_context(
    global_context: Mapping[str, float],
    defaults: Mapping[str, float],
    inputs: Mapping[str, str]
) -> Dict[str, float]:
    """Context for a block's first activation: global values, defaults, then the parsed inputs."""
    context = build_exec_context({}, global_context, defaults)
    for name, raw in inputs.items():
        context[name] = parse_input_value(raw)
    return context


def resolve_export_names(explicit_exports: Iterable[str], global_context: Mapping[str, float]) -> List[str]:
    """
    The export policy: a block's declared exports plus every name that already
    exists in the global context.

    Because every pre-existing global name is copied back from the block's context,
    a block that assigns a variable with the same name as a global overwrites that
    global each time it runs, whether or not it declared it as an export. Declared
    exports come first, in declaration order, then global names in insertion order.
    """
    names = list(dict.fromkeys(explicit_exports))
    seen = set(names)
    names.extend(name for name in global_context if name not in seen)
    return names


def apply_exports(
    exec_context: Mapping[str, float],
    global_context: MutableMapping[str, float],
    export_names: Iterable[str],
    block_label: str = ""
) -> None:
    """Copies every export name present in `exec_context` into `global_context`."""
    for name in export_names:
        if name in exec_context:
            global_context[name] = exec_context[name]
        else:
            logger.debug(f"Block '{block_label}': cannot find '{name}' to export to the global context.")
