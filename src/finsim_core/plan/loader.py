# src/finsim_core/plan/loader.py
import logging
import re
import string
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import cerberus
import yaml

from .definitions import BlockDefinition, Frequency, PlanDocument
from .exceptions import ParsingError, SchemaValidationError

logger = logging.getLogger(__name__)

ID_REGEX_FRAGMENT = r"[a-zA-Z_][a-zA-Z0-9_]*"
ID_REGEX = f"^{ID_REGEX_FRAGMENT}$"
ALLOWED_ID_CHARS = set(string.ascii_letters + string.digits + "_")

DEFAULT_END_AGE = 100


def _split_names(value: str) -> List[str]:
    return [name.strip() for name in value.split(",") if name.strip()]


class PlanSchemaValidator(cerberus.Validator):
    """Cerberus validator with the plan's naming rules, date coercion and uniqueness checks."""

    def _validate_id_regex(self, constraint: bool, field: str, value: Any):
        """
        Validates that a string is a valid variable name.
        The rule's arguments are validated against this schema:
        {'type': 'boolean'}
        """
        if not constraint:
            return
        if not isinstance(value, str):
            self._error(field, "must be a string to be validated by id_regex.")
            return

        if not re.match(ID_REGEX, value):
            invalid_chars = sorted(set(value) - ALLOWED_ID_CHARS)
            message = (
                f"Name '{value}' is invalid. Names must start with a letter or underscore "
                "and can only contain letters, numbers, and underscores."
            )
            if invalid_chars:
                message += f" It contains the forbidden character(s): {invalid_chars}"
            self._error(field, message)

    def _validate_unique_elements_by_key(self, key_for_uniqueness: str, field: str, value: List[Dict]):
        """
        Validates that all dictionaries in a list have a unique value for a given key.
        The rule's arguments are validated against this schema:
        {'type': 'string'}
        """
        if not isinstance(value, list):
            return

        seen_keys = set()
        duplicates = []
        for item in value:
            if not isinstance(item, dict):
                continue
            item_key = item.get(key_for_uniqueness)
            if item_key is not None:
                if item_key in seen_keys:
                    duplicates.append(item_key)
                else:
                    seen_keys.add(item_key)

        if duplicates:
            self._error(field, f"Duplicate values found for key '{key_for_uniqueness}': {sorted(set(duplicates))}")

    def _normalize_coerce_iso_date(self, value: Any) -> date:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            return date.fromisoformat(value.strip())
        raise TypeError(f"expected a date or a 'YYYY-MM-DD' string, got {type(value).__name__}")

    def _normalize_coerce_name_list(self, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return _split_names(value)
        return value


class PlanLoader:
    """
    Loads plan documents (YAML or JSON files, or in-memory mappings), validates their
    structure and produces immutable `PlanDocument` objects.
    """
    _date_rule = {"type": "date", "required": True, "coerce": "iso_date"}
    _program_rule = {"type": "string", "required": False, "nullable": True, "default": ""}

    _block_schema = {
        "id": {"type": "string", "required": True, "empty": False},
        "title": {"type": "string", "required": False, "nullable": True, "default": ""},
        "start_date": _date_rule,
        "end_date": _date_rule,
        "frequency": {"type": "string", "required": True, "allowed": [f.value for f in Frequency]},
        "inputs": {
            "type": "dict", "required": False, "default": {},
            "keysrules": {"type": "string", "id_regex": True},
            "valuesrules": {"type": ["string", "number"], "nullable": True},
        },
        "init": _program_rule,
        "execution": _program_rule,
        "exports": {
            "type": "list", "required": False, "default": [], "coerce": "name_list",
            "schema": {"type": "string", "id_regex": True},
        },
    }

    _schema = {
        "plan_name": {"type": "string", "required": False, "empty": False},
        "birth_date": _date_rule,
        "end_age": {"type": "integer", "required": False, "min": 0, "default": DEFAULT_END_AGE},
        "global_init": _program_rule,
        "blocks": {
            "type": "list", "required": False, "default": [], "unique_elements_by_key": "id",
            "schema": {"type": "dict", "schema": _block_schema},
        },
        "simulation": {
            "type": "dict", "required": False, "default": {},
            "schema": {
                "strict_numerics": {"type": "boolean"},
                "fail_on_validation_errors": {"type": "boolean"},
                "chunk_days": {"type": "integer", "min": 1},
            },
        },
    }

    # The web application's saved-plan JSON. Unknown keys (graphs, chart settings,
    # per-block quantity formulas) belong to other collaborators and are ignored.
    _saved_plan_schema = {
        "simulationName": {"type": "string", "required": False},
        "currentAge": {"type": "number", "required": True, "min": 0},
        "endAge": {"type": "integer", "required": False, "min": 0},
        "globalInit": {"type": "string", "required": False, "nullable": True},
        "blocks": {
            "type": "list", "required": False,
            "schema": {
                "type": "dict", "allow_unknown": True,
                "schema": {
                    "id": {"type": "string", "required": True, "empty": False},
                    "state": {"type": "dict", "required": True, "allow_unknown": True},
                },
            },
        },
    }

    def __init__(self):
        self._validator = PlanSchemaValidator(self._schema)
        self._validator.allow_unknown = False
        self._saved_plan_validator = PlanSchemaValidator(self._saved_plan_schema)
        self._saved_plan_validator.allow_unknown = True
        logger.debug("PlanLoader initialized with strict structural validation rules.")

    def load(self, path: Union[str, Path], reference_date: Optional[date] = None) -> PlanDocument:
        """
        Loads a plan file. Files in the saved-plan JSON shape (with `currentAge`)
        are converted using `reference_date` (default: today) to derive the birth date.
        """
        source = Path(path).resolve()
        logger.info(f"Loading plan from: {source}")
        content = self._load_yaml(source)
        if "currentAge" in content:
            return self.load_saved_plan(content, reference_date or date.today(), source=source)
        return self.load_dict(content, source=source)

    def load_dict(self, data: Mapping[str, Any], source: Optional[Path] = None) -> PlanDocument:
        """Validates an in-memory plan mapping and builds the `PlanDocument`."""
        if not self._validator.validate(dict(data)):
            raise SchemaValidationError(self._validator.errors, source)
        document = self._validator.document

        blocks = tuple(self._build_block(raw) for raw in document["blocks"])
        plan = PlanDocument(
            name=document.get("plan_name") or (source.stem if source else "plan"),
            global_init_program=document["global_init"] or "",
            blocks=blocks,
            birth_date=document["birth_date"],
            end_age=document["end_age"],
            source_path=source,
            raw_simulation_config=dict(document["simulation"]),
        )
        logger.info(f"Loaded plan '{plan.name}' with {len(blocks)} block(s), birth date {plan.birth_date}, end age {plan.end_age}.")
        return plan

    def load_saved_plan(
        self,
        data: Mapping[str, Any],
        reference_date: date,
        source: Optional[Path] = None
    ) -> PlanDocument:
        """
        Converts the saved-plan JSON shape into a plan. The birth date is January 1st
        of `reference_date.year - currentAge`; `endAge` defaults to 100.
        """
        if not self._saved_plan_validator.validate(dict(data)):
            raise SchemaValidationError(self._saved_plan_validator.errors, source)
        saved = self._saved_plan_validator.document

        blocks = []
        for entry in saved.get("blocks") or []:
            state = entry["state"]
            blocks.append({
                "id": entry["id"],
                "title": state.get("title") or "",
                "start_date": state.get("startDate"),
                "end_date": state.get("endDate"),
                "frequency": state.get("frequency"),
                "inputs": state.get("inputs") or {},
                "init": state.get("init") or "",
                "execution": state.get("execution") or "",
                "exports": state.get("exports") or [],
            })

        canonical = {
            "birth_date": date(reference_date.year - int(saved["currentAge"]), 1, 1),
            "end_age": saved.get("endAge", DEFAULT_END_AGE),
            "global_init": saved.get("globalInit") or "",
            "blocks": blocks,
        }
        if saved.get("simulationName"):
            canonical["plan_name"] = saved["simulationName"]
        return self.load_dict(canonical, source=source)

    def _build_block(self, raw: Dict[str, Any]) -> BlockDefinition:
        inputs = {
            name: "" if value is None else str(value)
            for name, value in raw["inputs"].items()
        }
        return BlockDefinition(
            block_id=raw["id"],
            title=raw["title"] or "",
            start_date=raw["start_date"],
            end_date=raw["end_date"],
            frequency=Frequency(raw["frequency"]),
            inputs=inputs,
            init_program=raw["init"] or "",
            execution_program=raw["execution"] or "",
            exports=tuple(raw["exports"]),
        )

    def _load_yaml(self, source: Path) -> Dict[str, Any]:
        """Loads and performs basic sanity checks on a YAML (or JSON) file."""
        if not source.is_file():
            raise ParsingError(details=f"Plan file not found at path: {source}", file_path=source)
        try:
            with source.open("r", encoding="utf-8") as f:
                content = yaml.safe_load(f)
        except PermissionError as e:
            raise ParsingError(details=f"Permission denied when trying to read file: {e}", file_path=source) from e
        except yaml.YAMLError as e:
            raise ParsingError(details=f"Invalid YAML syntax: {e}", file_path=source) from e
        if content is None:
            raise ParsingError(details="The file is empty or contains no valid content.", file_path=source)
        if not isinstance(content, dict):
            raise ParsingError(details="The root of the plan document must be a mapping.", file_path=source)
        return content
