# src/finsim_core/validation/__init__.py
from .issues import ValidationIssue, ValidationIssueLevel
from .issue_codes import PlanIssueCode
from .plan_validator import PlanValidator
from .exceptions import PlanValidationError

__all__ = [
    "ValidationIssue",
    "ValidationIssueLevel",
    "PlanIssueCode",
    "PlanValidator",
    "PlanValidationError",
]
