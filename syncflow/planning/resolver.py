# syncflow/planning/resolver.py

from typing import Dict, Iterable, List, Tuple

from syncflow.repository.loader import WorkflowRecord
from syncflow.utils.graph import build_dependency_graph, list_cycles, sorted_successors
from syncflow.utils.logger import get_logger

log = get_logger("resolver")

# DFS marks
UNVISITED = 0
IN_PROGRESS = 1
DONE = 2


def resolve_order(records: Iterable[WorkflowRecord]) -> Tuple[List[WorkflowRecord], List[str]]:
    """
    Order records so that every workflow comes after the workflows it executes.

    Depth-first topological sort over the dependency graph with tri-color marking.
    An edge that leads back into a node still on the DFS stack closes a cycle: it is
    reported and ignored, and ordering continues best-effort.

    Returns:
        ordered (every record exactly once), warnings (List[str])
    """
    records = list(records)
    by_key: Dict[str, WorkflowRecord] = {r.key: r for r in records}
    G = build_dependency_graph(records)

    state: Dict[str, int] = {k: UNVISITED for k in G.nodes}
    ordered: List[WorkflowRecord] = []
    warnings: List[str] = []

    def visit(key: str, path: List[str]) -> None:
        state[key] = IN_PROGRESS
        path.append(key)
        for dep in sorted_successors(G, key):
            if state[dep] == IN_PROGRESS:
                chain = " -> ".join(by_key[k].name for k in path[path.index(dep):] + [dep])
                msg = (
                    f"[CYCLE] Dependency cycle detected: {chain} "
                    f"(ignoring edge '{by_key[key].name}' -> '{by_key[dep].name}')"
                )
                log.warning(msg)
                warnings.append(msg)
                continue
            if state[dep] == UNVISITED:
                visit(dep, path)
        path.pop()
        state[key] = DONE
        ordered.append(by_key[key])

    for key in sorted(G.nodes):
        if state[key] == UNVISITED:
            visit(key, [])

    return ordered, warnings


def describe_order(records: Iterable[WorkflowRecord]) -> Dict[str, object]:
    """Apply order plus cycle listing, for the `order` command."""
    records = list(records)
    ordered, warnings = resolve_order(records)
    G = build_dependency_graph(records)
    return {
        "order": [r.name for r in ordered],
        "dependencies": {
            r.name: sorted(r.dependencies) for r in ordered
        },
        "external": {
            r.name: sorted(d for d in r.dependencies if d not in G) for r in ordered
            if any(d not in G for d in r.dependencies)
        },
        "cycles": list_cycles(G),
        "warnings": warnings,
    }
