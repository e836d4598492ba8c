from __future__ import annotations

import copy
import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List

from jsonschema import Draft7Validator

from flowbridge.errors import ValidationError
from flowbridge.utils.io import read_text

SCHEMAS_DIR = Path(__file__).resolve().parents[1] / "schemas"
WORKFLOW_SCHEMA = "workflow.schema.json"
REQUIRED_FIELDS = ("name", "nodes", "connections", "settings")


@lru_cache(maxsize=None)
def _load_schema(name: str) -> Dict:
    return json.loads(read_text(SCHEMAS_DIR / name))


def workflow_schema(strict: bool = False) -> Dict:
    schema = copy.deepcopy(_load_schema(WORKFLOW_SCHEMA))
    if strict:
        schema["additionalProperties"] = False
    return schema


def _missing_fields(errors: List) -> List[str]:
    missing: List[str] = []
    for error in errors:
        if error.validator == "required" and not error.path:
            for field in error.validator_value:
                if field not in error.instance and field not in missing:
                    missing.append(field)
    return missing


def validate_workflow(parsed: Any, raw_text: str, strict: bool = False) -> Dict[str, Any]:
    """Check that ``parsed`` has the workflow document top-level shape.

    In strict mode any top-level key besides name, nodes, connections and
    settings is rejected as well.
    """
    if not isinstance(parsed, dict):
        raise ValidationError(
            f"Workflow document must be a JSON object, got {type(parsed).__name__}.",
            raw_text,
        )

    validator = Draft7Validator(workflow_schema(strict=strict))
    errors = sorted(validator.iter_errors(parsed), key=lambda item: [str(part) for part in item.path])
    if not errors:
        return parsed

    missing = _missing_fields(errors)
    extra = sorted(key for key in parsed if key not in REQUIRED_FIELDS) if strict else []
    if missing:
        message = "Workflow document is missing required fields: " + ", ".join(missing)
    elif extra and any(error.validator == "additionalProperties" for error in errors):
        message = "Workflow document has unexpected fields: " + ", ".join(extra)
    else:
        first = errors[0]
        location = "/".join(str(part) for part in first.path) or "<root>"
        message = f"Workflow document is invalid at {location}: {first.message}"
    raise ValidationError(message, raw_text, missing_fields=missing, extra_fields=extra)
