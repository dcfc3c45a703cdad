# syncflow/repository/dependencies.py
from __future__ import annotations

import copy
from typing import Any, Dict, Iterator, Mapping, Set, Tuple

# Node type of the "Execute Workflow" step; the only way a workflow references another.
SUBWORKFLOW_NODE_TYPES = ("n8n-nodes-base.executeWorkflow",)

# Resource-locator parameter holding the referenced workflow
WORKFLOW_REF_PARAM = "workflowId"


def is_subworkflow_node(node: Dict[str, Any]) -> bool:
    return node.get("type") in SUBWORKFLOW_NODE_TYPES


def _workflow_refs(workflow: Dict[str, Any]) -> Iterator[Tuple[Dict[str, Any], Dict[str, Any]]]:
    """Yield (node, workflowId locator) for every sub-workflow node with a cached display name."""
    for node in workflow.get("nodes") or []:
        if not isinstance(node, dict) or not is_subworkflow_node(node):
            continue
        ref = (node.get("parameters") or {}).get(WORKFLOW_REF_PARAM)
        if not isinstance(ref, dict):
            # plain id string: invisible to ordering (see DESIGN.md)
            continue
        cached = ref.get("cachedResultName")
        if isinstance(cached, str) and cached.strip():
            yield node, ref


def extract_dependencies(workflow: Dict[str, Any]) -> Set[str]:
    """Lower-cased names of the workflows this one executes."""
    return {ref["cachedResultName"].strip().lower() for _node, ref in _workflow_refs(workflow)}


def rewrite_subworkflow_refs(
    workflow: Dict[str, Any],
    name_to_id: Mapping[str, str],
) -> Tuple[Dict[str, Any], Dict[str, str]]:
    """
    Point sub-workflow references at the identifiers currently known for their names.

    Returns (new_workflow, rewritten) where rewritten maps node name -> new id.
    The input is never modified. References whose name has no known id are left as-is.
    """
    out = copy.deepcopy(workflow)
    rewritten: Dict[str, str] = {}
    for node, ref in _workflow_refs(out):
        target = ref["cachedResultName"].strip().lower()
        new_id = name_to_id.get(target)
        if not new_id:
            continue
        new_id = str(new_id)
        if ref.get("value") != new_id:
            rewritten[str(node.get("name"))] = new_id
        ref["value"] = new_id
        if "cachedResultUrl" in ref:
            ref["cachedResultUrl"] = f"/workflow/{new_id}"
    return out, rewritten
