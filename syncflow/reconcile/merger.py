# syncflow/reconcile/merger.py
"""
Merge engine: repository logic + server-owned instance data.

Repository wins on everything it authors (name, nodes, connections, settings).
The server wins on what the repository can never express: workflow id and
timestamps, meta.instanceId, and per node the id, webhookId, canvas position and
bound credentials.
"""
from __future__ import annotations

import copy
from typing import Any, Dict, List

from syncflow.reconcile.credentials import clean_repo_credentials, merge_credentials
from syncflow.reconcile.detector import node_identity

WORKFLOW_INSTANCE_FIELDS = ("id", "createdAt", "updatedAt")
NODE_INSTANCE_FIELDS = ("id", "webhookId", "position")

# Only these top-level fields are accepted when creating a workflow.
CREATE_FIELDS = ("name", "nodes", "connections", "settings")


def _set_credentials(node: Dict[str, Any], credentials: Any) -> None:
    if credentials is None:
        node.pop("credentials", None)
    else:
        node["credentials"] = credentials


def prepare_new_node(node: Dict[str, Any]) -> Dict[str, Any]:
    """A node with nothing on the server to preserve: only placeholders need cleaning."""
    prepared = copy.deepcopy(node)
    if prepared.get("credentials") is not None:
        _set_credentials(prepared, clean_repo_credentials(prepared["credentials"]))
    return prepared


def merge_node(repo_node: Dict[str, Any], remote_node: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(repo_node)
    for fld in NODE_INSTANCE_FIELDS:
        if remote_node.get(fld) is not None:
            merged[fld] = copy.deepcopy(remote_node[fld])
        else:
            merged.pop(fld, None)
    _set_credentials(
        merged,
        merge_credentials(repo_node.get("credentials"), copy.deepcopy(remote_node.get("credentials"))),
    )
    return merged


def merge_nodes(repo_nodes: List[Dict[str, Any]], remote_nodes: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Repository order is kept; remote nodes are matched by (name, type)."""
    remote_map = {node_identity(n): n for n in remote_nodes or []}
    out: List[Dict[str, Any]] = []
    for node in repo_nodes or []:
        remote = remote_map.get(node_identity(node))
        out.append(merge_node(node, remote) if remote is not None else prepare_new_node(node))
    return out


def merge_workflows(repo_workflow: Dict[str, Any], remote_workflow: Dict[str, Any]) -> Dict[str, Any]:
    """
    Build the update payload. Neither input is modified, and
    merge_workflows(merge_workflows(r, s), s) == merge_workflows(r, s).
    """
    merged = copy.deepcopy(repo_workflow)

    for fld in WORKFLOW_INSTANCE_FIELDS:
        if remote_workflow.get(fld):
            merged[fld] = remote_workflow[fld]

    instance_id = (remote_workflow.get("meta") or {}).get("instanceId")
    if instance_id:
        meta = merged.get("meta")
        merged["meta"] = dict(meta) if isinstance(meta, dict) else {}
        merged["meta"]["instanceId"] = instance_id

    merged["nodes"] = merge_nodes(repo_workflow.get("nodes") or [], remote_workflow.get("nodes") or [])
    return merged


def prepare_for_create(workflow: Dict[str, Any]) -> Dict[str, Any]:
    """
    Payload for a brand-new workflow: allowed top-level fields only, node ids
    dropped, credential placeholders reduced to their names.
    """
    payload: Dict[str, Any] = {k: copy.deepcopy(workflow[k]) for k in CREATE_FIELDS if k in workflow}
    if not isinstance(payload.get("settings"), dict):
        payload["settings"] = {}
    if not isinstance(payload.get("connections"), dict):
        payload["connections"] = {}

    nodes = []
    for node in payload.get("nodes") or []:
        prepared = prepare_new_node(node)
        prepared.pop("id", None)
        nodes.append(prepared)
    payload["nodes"] = nodes
    return payload
