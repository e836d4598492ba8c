from __future__ import annotations

import uuid
from typing import Any, Dict, List, Set


def node_id() -> str:
    return str(uuid.uuid4())


def ensure_node_ids(document: Dict[str, Any]) -> Dict[str, Any]:
    for node in document.get("nodes") or []:
        if isinstance(node, dict) and node.get("id") is None:
            node["id"] = node_id()
    return document


def node_names(document: Dict[str, Any]) -> Set[str]:
    return {
        node["name"]
        for node in document.get("nodes") or []
        if isinstance(node, dict) and isinstance(node.get("name"), str)
    }


def dangling_connections(document: Dict[str, Any]) -> List[str]:
    """List connection sources and targets that name no node in the document."""
    names = node_names(document)
    problems: List[str] = []
    connections = document.get("connections") or {}
    if not isinstance(connections, dict):
        return problems

    for source_name, outputs in connections.items():
        if source_name not in names:
            problems.append(f"Connection source '{source_name}' not found in nodes")
        if not isinstance(outputs, dict):
            continue
        for port_type, branches in outputs.items():
            if not isinstance(branches, list):
                continue
            for branch in branches:
                if not isinstance(branch, list):
                    continue
                for link in branch:
                    if not isinstance(link, dict):
                        continue
                    target_name = link.get("node")
                    if target_name and target_name not in names:
                        problems.append(
                            f"Connection target '{target_name}' ({port_type}) "
                            f"from '{source_name}' not found in nodes"
                        )
    return problems
