# src/finsim_core/plan/__init__.py
from .definitions import BlockDefinition, Frequency, PlanDocument
from .loader import PlanLoader
from .exceptions import ParsingError, SchemaValidationError

__all__ = [
    # Plan Data Structures
    "BlockDefinition",
    "Frequency",
    "PlanDocument",
    # Loader and Exceptions
    "PlanLoader",
    "ParsingError",
    "SchemaValidationError",
]
