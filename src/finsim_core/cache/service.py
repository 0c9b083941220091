# src/finsim_core/cache/service.py
"""
Provides the compiled-program cache used during a simulation run.
"""
import logging
from typing import Dict, Hashable

from ..language.statements import Program, parse_program
from .keys import create_program_key

logger = logging.getLogger(__name__)


class ProgramCache:
    """
    Compiles each distinct program text once and hands out the immutable `Program`.

    A run executes the same few programs tens of thousands of times; compiling them
    once per run removes the parser from the daily loop. The cache is an explicit
    object owned by one `SimulationContext`: it has no class-level storage, so two
    runs never share or observe each other's cache.
    """

    def __init__(self):
        self._programs: Dict[Hashable, Program] = {}
        self.clear_stats()
        logger.debug("ProgramCache instance created.")

    def get_program(self, source: str) -> Program:
        """Returns the compiled program for `source`, compiling it on first use."""
        key = create_program_key(source)
        program = self._programs.get(key)
        if program is not None:
            self._stats['hits'] += 1
            return program

        self._stats['misses'] += 1
        program = parse_program(source)
        self._programs[key] = program
        logger.debug(f"Compiled program with {len(program.statements)} statement(s); cache size {len(self._programs)}.")
        return program

    def __len__(self) -> int:
        return len(self._programs)

    def get_stats(self) -> Dict[str, int]:
        """Returns a copy of the hit/miss statistics."""
        return dict(self._stats)

    def clear_stats(self):
        self._stats = {'hits': 0, 'misses': 0}

    def clear(self):
        self._programs.clear()
        self.clear_stats()
