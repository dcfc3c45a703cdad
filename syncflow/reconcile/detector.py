# syncflow/reconcile/detector.py

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from syncflow.reconcile.credentials import strip_credential_ids
from syncflow.utils.io import canonical_json

ADDED = "added"
REMOVED = "removed"
MODIFIED = "modified"


@dataclass
class NodeChange:
    kind: str   # added | removed | modified
    node: str


@dataclass
class ChangeReport:
    name: bool = False
    nodes: List[NodeChange] = field(default_factory=list)
    connections: bool = False
    settings: bool = False

    @property
    def has_changes(self) -> bool:
        return self.name or bool(self.nodes) or self.connections or self.settings

    def nodes_of(self, kind: str) -> List[str]:
        return [c.node for c in self.nodes if c.kind == kind]

    @property
    def summary(self) -> str:
        parts: List[str] = []
        if self.name:
            parts.append("name")
        if self.nodes:
            counts = Counter(c.kind for c in self.nodes)
            by_kind = ", ".join(f"{n} {kind}" for kind, n in counts.items())
            parts.append(f"nodes: {by_kind}")
        if self.connections:
            parts.append("connections")
        if self.settings:
            parts.append("settings")
        return "; ".join(parts) if parts else "no changes"

    def as_dict(self) -> Dict[str, Any]:
        return {
            "has_changes": self.has_changes,
            "summary": self.summary,
            "name": self.name,
            "nodes": {
                ADDED: self.nodes_of(ADDED),
                REMOVED: self.nodes_of(REMOVED),
                MODIFIED: self.nodes_of(MODIFIED),
            },
            "connections": self.connections,
            "settings": self.settings,
        }


def node_identity(node: Dict[str, Any]) -> Tuple[Any, Any]:
    """Logical node identity across repository and server copies."""
    return node.get("name"), node.get("type")


def _index_nodes(nodes: List[Dict[str, Any]]) -> Dict[Tuple[Any, Any], Dict[str, Any]]:
    # last one wins on duplicate identities, same as a Map built from the list
    return {node_identity(n): n for n in nodes or []}


def normalized_parameters(node: Dict[str, Any]) -> str:
    return canonical_json(strip_credential_ids(node.get("parameters") or {}))


def detect_node_changes(repo_nodes: List[Dict[str, Any]], remote_nodes: List[Dict[str, Any]]) -> List[NodeChange]:
    """
    Three disjoint buckets, reported in this order:
      added    - identity only in the repository
      removed  - identity only on the server
      modified - identity in both, normalized parameters differ
    """
    repo_map = _index_nodes(repo_nodes)
    remote_map = _index_nodes(remote_nodes)
    changes: List[NodeChange] = []

    for key, node in repo_map.items():
        if key not in remote_map:
            changes.append(NodeChange(ADDED, str(node.get("name"))))

    for key, node in remote_map.items():
        if key not in repo_map:
            changes.append(NodeChange(REMOVED, str(node.get("name"))))

    for key, node in repo_map.items():
        other = remote_map.get(key)
        if other is not None and normalized_parameters(node) != normalized_parameters(other):
            changes.append(NodeChange(MODIFIED, str(node.get("name"))))

    return changes


def _differs(a: Any, b: Any) -> bool:
    return canonical_json(a or {}) != canonical_json(b or {})


def detect_changes(repo_workflow: Dict[str, Any], remote_workflow: Dict[str, Any]) -> ChangeReport:
    """
    Decide whether writing `repo_workflow` over `remote_workflow` would change anything.

    Pure function; neither input is modified. Credential bindings themselves are not
    compared, only credential references embedded in node parameters (minus their ids).
    """
    return ChangeReport(
        name=repo_workflow.get("name") != remote_workflow.get("name"),
        nodes=detect_node_changes(repo_workflow.get("nodes") or [], remote_workflow.get("nodes") or []),
        connections=_differs(repo_workflow.get("connections"), remote_workflow.get("connections")),
        settings=_differs(repo_workflow.get("settings"), remote_workflow.get("settings")),
    )
