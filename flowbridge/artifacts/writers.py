from __future__ import annotations

from pathlib import Path
from typing import Dict, List

from flowbridge.catalog import RequirementField
from flowbridge.utils.io import write_text


def write_workflow_summary(
    path: Path,
    document: Dict,
    dangling: List[str],
    fields: List[RequirementField],
) -> None:
    lines: List[str] = [f"# {document.get('name', 'Workflow')}", "", "## Nodes", ""]
    lines.append("| name | type | id |")
    lines.append("| --- | --- | --- |")
    for node in document.get("nodes", []):
        lines.append(f"| {node.get('name', '')} | {node.get('type', '')} | {node.get('id', '')} |")

    lines.extend(["", "## Connections", ""])
    for source, outputs in (document.get("connections") or {}).items():
        if not isinstance(outputs, dict):
            continue
        for port_type, branches in outputs.items():
            for branch in branches if isinstance(branches, list) else []:
                for link in branch if isinstance(branch, list) else []:
                    if isinstance(link, dict):
                        lines.append(f"- {source} -> {link.get('node')} ({port_type})")

    if dangling:
        lines.extend(["", "## Dangling references"])
        lines.extend([f"- {item}" for item in dangling])
    if fields:
        lines.extend(["", "## Requirement fields"])
        lines.extend(
            [f"- `{field.name}`: {field.label}{'' if field.required else ' (optional)'}" for field in fields]
        )
    write_text(path, "\n".join(lines) + "\n")
