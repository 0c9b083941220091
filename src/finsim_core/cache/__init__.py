# src/finsim_core/cache/__init__.py
"""
Exposes the public interface of the cache package.
"""
from .service import ProgramCache
from .keys import create_program_key

__all__ = [
    "ProgramCache",
    "create_program_key",
]
