from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List


@dataclass(frozen=True)
class RequirementField:
    name: str
    label: str
    widget: str = "text_input"
    required: bool = True


SCHEDULE_FIELDS = [
    RequirementField("SCHEDULE_CRON", "Cron expression", required=False),
    RequirementField("SCHEDULE_HOUR", "Hour (0-23)", widget="number_input", required=False),
    RequirementField("SCHEDULE_MINUTE", "Minute (0-59)", widget="number_input", required=False),
    RequirementField("TIMEZONE", "Timezone", required=False),
]

EMAIL_FIELDS = [
    RequirementField("SMTP_HOST", "SMTP host"),
    RequirementField("SMTP_PORT", "SMTP port", widget="number_input"),
    RequirementField("SMTP_SECURITY", "SMTP security (none, starttls, tls)", widget="select", required=False),
    RequirementField("SENDER_EMAIL", "Sender email"),
    RequirementField("SENDER_PASSWORD", "Sender password", widget="password"),
    RequirementField("FROM_EMAIL", "From address", required=False),
    RequirementField("FROM_NAME", "From name", required=False),
    RequirementField("RECIPIENT_EMAIL", "Recipient email"),
    RequirementField("EMAIL_SUBJECT", "Subject", required=False),
    RequirementField("EMAIL_BODY", "Body (text or HTML)", widget="text_area", required=False),
]

CATALOG = [
    ("schedule", SCHEDULE_FIELDS),
    ("email", EMAIL_FIELDS),
]


def suggest_requirement_fields(document: Dict[str, Any]) -> List[RequirementField]:
    """Requirement fields a user could fill in for the node types in ``document``.

    Advisory only; nothing here touches the document.
    """
    node_types = [
        node["type"].lower()
        for node in document.get("nodes") or []
        if isinstance(node, dict) and isinstance(node.get("type"), str)
    ]
    fields: List[RequirementField] = []
    seen = set()
    for fragment, catalog_fields in CATALOG:
        if not any(fragment in node_type for node_type in node_types):
            continue
        for field in catalog_fields:
            if field.name not in seen:
                seen.add(field.name)
                fields.append(field)
    return fields


def fields_payload(fields: List[RequirementField]) -> List[Dict[str, Any]]:
    return [asdict(field) for field in fields]
