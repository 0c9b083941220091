# src/finsim_core/validation/plan_validator.py
import logging
from typing import Dict, FrozenSet, List, Set

import networkx as nx

from ..language.statements import Program, parse_program
from ..plan.definitions import BlockDefinition, Frequency, PlanDocument
from ..simulation.config import simulation_date_range
from ..simulation.scheduler import PERIODS_FROM_START, TOTAL_PERIODS
from .issues import ValidationIssue, ValidationIssueLevel
from .issue_codes import PlanIssueCode

logger = logging.getLogger(__name__)

GLOBAL_INIT_NODE = "<global_init>"
DEFAULT_INPUT_NAMES = frozenset({PERIODS_FROM_START, TOTAL_PERIODS})


class PlanValidator:
    """
    Performs static checks on a loaded plan before it is simulated.

    Every finding is advisory. The simulation itself tolerates all of them (a bad
    line only fails its own program), so `validate()` just returns the issues and
    leaves it to the caller to decide whether ERROR-level issues should stop a run.

    Name checks work on the compiled programs: a block can read the global
    namespace (names assigned by the global init plus every explicit export), its
    own inputs, the default inputs and, in its execution program, whatever its init
    program assigned. The block data flow is modeled as a `networkx.DiGraph` with an
    edge from each writer of a global name to each block that reads it.
    """

    def __init__(self, plan: PlanDocument):
        self.plan = plan
        self.issues: List[ValidationIssue] = []
        self._programs: Dict[str, Program] = {}

    def validate(self) -> List[ValidationIssue]:
        """
        Returns:
            A list of all `ValidationIssue` objects found (errors, warnings, and info).
        """
        self.issues = []
        self._programs = {}
        logger.info(f"Starting plan validation for '{self.plan.name}'...")

        horizon = simulation_date_range(self.plan.birth_date, self.plan.end_age)
        for block in self.plan.blocks:
            self._check_block_calendar(block, horizon)

        self._check_program_syntax()
        self._check_names()
        self._check_dataflow()

        if self.issues:
            errors = sum(1 for i in self.issues if i.level == ValidationIssueLevel.ERROR)
            warnings = sum(1 for i in self.issues if i.level == ValidationIssueLevel.WARNING)
            infos = sum(1 for i in self.issues if i.level == ValidationIssueLevel.INFO)
            logger.info(f"Validation complete. Found: {errors} errors, {warnings} warnings, {infos} info messages.")
        else:
            logger.info("Validation complete with no issues found.")
        return self.issues

    def _add_issue(self, level: ValidationIssueLevel, code_enum: PlanIssueCode, block_id=None, phase=None, **kwargs):
        """Creates and records a ValidationIssue."""
        message = code_enum.format_message(block_id=block_id, phase=phase, **kwargs)
        details = dict(kwargs)
        if self.plan.source_path:
            details['source_path'] = str(self.plan.source_path)
        self.issues.append(ValidationIssue(
            level=level, code=code_enum.code, message=message,
            block_id=block_id, phase=phase, details=details
        ))

    # --- Helper Methods ---

    def _program(self, key: str, source: str) -> Program:
        if key not in self._programs:
            self._programs[key] = parse_program(source)
        return self._programs[key]

    def _global_init(self) -> Program:
        return self._program(GLOBAL_INIT_NODE, self.plan.global_init_program)

    def _init(self, block: BlockDefinition) -> Program:
        return self._program(f"{block.block_id}:init", block.init_program)

    def _execution(self, block: BlockDefinition) -> Program:
        return self._program(f"{block.block_id}:execution", block.execution_program)

    def _global_names(self) -> FrozenSet[str]:
        names: Set[str] = set(self._global_init().assigned_names)
        for block in self.plan.blocks:
            names.update(block.exports)
        return frozenset(names)

    def _init_scope(self, block: BlockDefinition, global_names: FrozenSet[str]) -> FrozenSet[str]:
        return global_names | DEFAULT_INPUT_NAMES | frozenset(block.inputs)

    def _execution_scope(self, block: BlockDefinition, global_names: FrozenSet[str]) -> FrozenSet[str]:
        return self._init_scope(block, global_names) | self._init(block).assigned_names

    def _global_reads(self, block: BlockDefinition) -> Set[str]:
        """Names a block takes from the global context rather than from its own scope."""
        local = DEFAULT_INPUT_NAMES | frozenset(block.inputs)
        reads = set(self._init(block).external_reads() - local)
        reads |= self._execution(block).external_reads() - local - self._init(block).assigned_names
        return reads

    def _writes(self, block: BlockDefinition, global_names: FrozenSet[str]) -> Set[str]:
        """
        Global names a block can change: its explicit exports plus any global name it
        assigns, since every existing global name is copied back after a block runs.
        """
        assigned = self._init(block).assigned_names | self._execution(block).assigned_names
        return set(block.exports) | (set(assigned) & global_names) | (set(block.inputs) & global_names)

    # --- Checks ---

    def _check_block_calendar(self, block: BlockDefinition, horizon):
        horizon_start, horizon_end = horizon
        dates = {
            'start_date': block.start_date.isoformat(),
            'end_date': block.end_date.isoformat(),
        }
        if block.end_date < block.start_date:
            self._add_issue(ValidationIssueLevel.ERROR, PlanIssueCode.BLOCK_DATE_ORDER, block_id=block.block_id, **dates)
            return

        if block.end_date < horizon_start or block.start_date > horizon_end:
            self._add_issue(
                ValidationIssueLevel.WARNING, PlanIssueCode.BLOCK_OUTSIDE_HORIZON, block_id=block.block_id,
                horizon_start=horizon_start.isoformat(), horizon_end=horizon_end.isoformat(), **dates
            )

        if block.frequency == Frequency.MONTHLY and block.start_date.day > 28:
            self._add_issue(
                ValidationIssueLevel.INFO, PlanIssueCode.BLOCK_MONTHLY_SKIP,
                block_id=block.block_id, day=block.start_date.day
            )

    def _check_program_syntax(self):
        programs = [(None, "global_init", self._global_init())]
        for block in self.plan.blocks:
            programs.append((block.block_id, "init", self._init(block)))
            programs.append((block.block_id, "execution", self._execution(block)))

        for block_id, phase, program in programs:
            for error in program.errors:
                self._add_issue(
                    ValidationIssueLevel.ERROR, PlanIssueCode.PROGRAM_SYNTAX, block_id=block_id, phase=phase,
                    line_number=error.line_number, error=error.details
                )

    def _check_names(self):
        global_names = self._global_names()

        for name in sorted(self._global_init().external_reads()):
            self._add_issue(ValidationIssueLevel.WARNING, PlanIssueCode.UNRESOLVED_NAME, phase="global_init", name=name)

        for block in self.plan.blocks:
            init_scope = self._init_scope(block, global_names)
            for name in sorted(self._init(block).external_reads() - init_scope):
                self._add_issue(
                    ValidationIssueLevel.WARNING, PlanIssueCode.UNRESOLVED_NAME,
                    block_id=block.block_id, phase="init", name=name
                )

            execution_scope = self._execution_scope(block, global_names)
            for name in sorted(self._execution(block).external_reads() - execution_scope):
                self._add_issue(
                    ValidationIssueLevel.WARNING, PlanIssueCode.UNRESOLVED_NAME,
                    block_id=block.block_id, phase="execution", name=name
                )

            assigned = (
                self._init(block).assigned_names | self._execution(block).assigned_names
                | frozenset(block.inputs) | DEFAULT_INPUT_NAMES | self._global_init().assigned_names
            )
            for name in block.exports:
                if name not in assigned:
                    self._add_issue(
                        ValidationIssueLevel.WARNING, PlanIssueCode.EXPORT_NEVER_ASSIGNED,
                        block_id=block.block_id, name=name
                    )

    def _build_dataflow_graph(self, global_names: FrozenSet[str]) -> nx.DiGraph:
        graph = nx.DiGraph()
        graph.add_node(GLOBAL_INIT_NODE)
        graph.add_nodes_from(block.block_id for block in self.plan.blocks)

        writers: Dict[str, List[str]] = {}
        for name in self._global_init().assigned_names:
            writers.setdefault(name, []).append(GLOBAL_INIT_NODE)
        for block in self.plan.blocks:
            for name in self._writes(block, global_names):
                writers.setdefault(name, []).append(block.block_id)

        for block in self.plan.blocks:
            for name in self._global_reads(block):
                for writer in writers.get(name, []):
                    if writer == block.block_id:
                        continue
                    if graph.has_edge(writer, block.block_id):
                        graph[writer][block.block_id]['names'].add(name)
                    else:
                        graph.add_edge(writer, block.block_id, names={name})
        logger.debug(f"Data-flow graph built. Nodes: {graph.number_of_nodes()}, Edges: {graph.number_of_edges()}")
        return graph

    def _check_dataflow(self):
        global_names = self._global_names()
        graph = self._build_dataflow_graph(global_names)
        order = {block.block_id: index for index, block in enumerate(self.plan.blocks)}
        global_init_names = self._global_init().assigned_names

        for block in self.plan.blocks:
            index = order[block.block_id]
            for name in sorted(self._global_reads(block) - global_init_names):
                producers = [
                    writer for writer, _, data in graph.in_edges(block.block_id, data=True)
                    if name in data['names'] and writer != GLOBAL_INIT_NODE
                ]
                if name in self._writes(block, global_names) or not producers:
                    continue
                if all(order[p] > index for p in producers):
                    first = min(producers, key=order.get)
                    self._add_issue(
                        ValidationIssueLevel.INFO, PlanIssueCode.FORWARD_REFERENCE,
                        block_id=block.block_id, name=name, producer=first
                    )

        for cycle in nx.simple_cycles(graph):
            if len(cycle) < 2:
                continue
            ordered = sorted(cycle, key=order.get)
            start = cycle.index(ordered[0])
            rotated = cycle[start:] + cycle[:start]
            self._add_issue(
                ValidationIssueLevel.INFO, PlanIssueCode.DATAFLOW_CYCLE,
                cycle=" -> ".join(rotated + [rotated[0]])
            )
