from __future__ import annotations

import math
import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

Requirements = Mapping[str, Any]
NodeRule = Tuple[Callable[[Dict[str, Any]], bool], Callable[[Dict[str, Any], Requirements], None]]

_HTML_TAG = re.compile(r"</?[A-Za-z][A-Za-z0-9-]*(?:\s[^<>]*)?/?>")
_SECURITY_MODES = {"none": False, "starttls": False, "tls": True, "ssl": True}


def lookup_requirement(requirements: Requirements, key: str) -> Optional[Any]:
    """Exact key first, else the first key matching case-insensitively.

    ``None`` and blank strings count as not provided.
    """
    if key in requirements:
        value = requirements[key]
    else:
        lowered = key.lower()
        value = None
        for candidate, candidate_value in requirements.items():
            if isinstance(candidate, str) and candidate.lower() == lowered:
                value = candidate_value
                break
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return value


def coerce_number(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value
    text = str(value).strip()
    if "_" in text:
        return value
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return value
    # NaN and infinities are not valid JSON.
    return number if math.isfinite(number) else value


def _type_contains(fragment: str) -> Callable[[Dict[str, Any]], bool]:
    def predicate(node: Dict[str, Any]) -> bool:
        node_type = node.get("type")
        return isinstance(node_type, str) and fragment in node_type.lower()

    return predicate


def _apply_schedule(parameters: Dict[str, Any], requirements: Requirements) -> None:
    cron = lookup_requirement(requirements, "SCHEDULE_CRON")
    hour = lookup_requirement(requirements, "SCHEDULE_HOUR")
    minute = lookup_requirement(requirements, "SCHEDULE_MINUTE")
    timezone = lookup_requirement(requirements, "TIMEZONE")

    # Cron wins over hour/minute; the two are never combined.
    if cron is not None:
        parameters["triggerAt"] = "cron"
        parameters["cronExpression"] = cron
    elif hour is not None or minute is not None:
        parameters["triggerAt"] = "hour"
        if hour is not None:
            parameters["hour"] = coerce_number(hour)
        if minute is not None:
            parameters["minute"] = coerce_number(minute)

    if timezone is not None:
        parameters["timezone"] = timezone


def _apply_email(parameters: Dict[str, Any], requirements: Requirements) -> None:
    host = lookup_requirement(requirements, "SMTP_HOST")
    port = lookup_requirement(requirements, "SMTP_PORT")
    user = lookup_requirement(requirements, "SENDER_EMAIL")
    password = lookup_requirement(requirements, "SENDER_PASSWORD")

    if any(value is not None for value in (host, port, user, password)):
        parameters["authentication"] = "smtp"
        if host is not None:
            parameters["host"] = host
        if port is not None:
            parameters["port"] = coerce_number(port)
        if user is not None:
            parameters["user"] = user
        if password is not None:
            parameters["password"] = password

    security = lookup_requirement(requirements, "SMTP_SECURITY")
    if isinstance(security, str) and security.strip().lower() in _SECURITY_MODES:
        parameters["secure"] = _SECURITY_MODES[security.strip().lower()]

    for key, target in (
        ("FROM_EMAIL", "fromEmail"),
        ("FROM_NAME", "fromName"),
        ("EMAIL_SUBJECT", "subject"),
    ):
        value = lookup_requirement(requirements, key)
        if value is not None:
            parameters[target] = value

    recipient = lookup_requirement(requirements, "RECIPIENT_EMAIL")
    if recipient is None:
        recipient = lookup_requirement(requirements, "TO_EMAIL")
    if recipient is not None:
        parameters["to"] = recipient

    body = lookup_requirement(requirements, "EMAIL_BODY")
    if body is not None:
        if isinstance(body, str) and _HTML_TAG.search(body):
            parameters["html"] = body
        else:
            parameters["text"] = body


NODE_RULES: List[NodeRule] = [
    (_type_contains("schedule"), _apply_schedule),
    (_type_contains("email"), _apply_email),
]


def apply_requirements(
    document: Dict[str, Any], requirements: Optional[Requirements]
) -> Dict[str, Any]:
    """Overlay user-supplied requirement values onto matching node parameters.

    Every rule whose predicate matches a node is applied, so one node can
    receive both schedule and email parameters. Existing parameter keys are
    only ever overwritten, never removed.
    """
    nodes = document.get("nodes") if isinstance(document, dict) else None
    if not nodes or not requirements:
        return document

    for node in nodes:
        if not isinstance(node, dict):
            continue
        if node.get("parameters") is None:
            node["parameters"] = {}
        if not isinstance(node["parameters"], dict):
            continue
        for predicate, mutate in NODE_RULES:
            if predicate(node):
                mutate(node["parameters"], requirements)
    return document
