from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from flowbridge.errors import DocumentError, ExtractionError
from flowbridge.gates.validation import validate_workflow
from flowbridge.workflow import ensure_node_ids

_OPENING_FENCE = re.compile(r"^```[A-Za-z0-9_+-]*[ \t]*\r?\n?", flags=re.IGNORECASE)
_CLOSING_FENCE = re.compile(r"(?:\r?\n|^)?[ \t]*```[ \t]*$")

_PAIRS = {"}": "{", "]": "["}


@dataclass
class ExtractionResult:
    ok: bool
    raw_text: str
    document: Optional[Dict[str, Any]] = None
    error: Optional[DocumentError] = None


def strip_code_fences(text: str) -> str:
    stripped = text.strip()
    stripped = _OPENING_FENCE.sub("", stripped, count=1)
    stripped = _CLOSING_FENCE.sub("", stripped, count=1)
    return stripped.strip()


def find_balanced_json(text: str, raw_text: str | None = None) -> str:
    """Return the first top-level bracketed span of ``text``.

    Brackets inside string literals are ignored; a backslash inside a string
    escapes the next character. Scanning stops at the first span whose
    bracket stack returns to empty.
    """
    raw = text if raw_text is None else raw_text
    stack: list[str] = []
    start: int | None = None
    in_string = False
    escaped = False

    for index, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char in "{[":
            if not stack:
                start = index
            stack.append(char)
        elif char in "}]":
            if not stack:
                continue
            if stack[-1] != _PAIRS[char]:
                raise ExtractionError(
                    f"Mismatched '{char}' at offset {index} in model output.", raw
                )
            stack.pop()
            if not stack:
                return text[start : index + 1]

    if start is None:
        raise ExtractionError("No JSON object found in model output.", raw)
    raise ExtractionError("Unbalanced JSON value in model output.", raw)


def extract_json(raw_text: str) -> Any:
    stripped = strip_code_fences(raw_text)
    candidate = find_balanced_json(stripped, raw_text)
    try:
        return json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise ExtractionError(
            f"Invalid JSON in model output: {exc.msg} (line {exc.lineno}, column {exc.colno}).",
            raw_text,
        ) from exc
    except RecursionError as exc:
        raise ExtractionError("JSON in model output is nested too deeply to parse.", raw_text) from exc


def extract(raw_text: str, strict: bool = False) -> Dict[str, Any]:
    parsed = extract_json(raw_text)
    validate_workflow(parsed, raw_text, strict=strict)
    ensure_node_ids(parsed)
    return parsed


def extract_workflow(raw_text: str, strict: bool = False) -> ExtractionResult:
    try:
        document = extract(raw_text, strict=strict)
    except DocumentError as exc:
        return ExtractionResult(ok=False, raw_text=raw_text, error=exc)
    return ExtractionResult(ok=True, raw_text=raw_text, document=document)
