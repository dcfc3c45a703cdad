# syncflow/utils/graph.py
from typing import Any, Dict, Iterable, List

import networkx as nx


def build_dependency_graph(records: Iterable[Any]) -> nx.DiGraph:
    """
    Build the workflow dependency graph.

    Nodes are identity keys (lower-cased workflow names); an edge A -> B means
    "A executes B as a sub-workflow", so B has to exist remotely before A is written.
    Only dependencies that are themselves part of `records` become edges; anything
    else is expected to already exist on the remote side.
    """
    G = nx.DiGraph()
    records = list(records)
    for rec in records:
        G.add_node(rec.key, name=rec.name)

    for rec in records:
        for dep in rec.dependencies:
            if dep == rec.key:
                # self reference: keep it visible as a cycle
                G.add_edge(rec.key, dep)
                continue
            if dep in G:
                G.add_edge(rec.key, dep)
    return G


def sorted_successors(G: nx.DiGraph, key: str) -> List[str]:
    """Successors in a stable order (networkx keeps insertion order, which depends on file layout)."""
    return sorted(G.successors(key))


def list_cycles(G: nx.DiGraph) -> List[List[str]]:
    """
    Elementary cycles of the dependency graph, each rotated to start at its
    smallest key so the output is stable.
    """
    cycles: List[List[str]] = []
    for cyc in nx.simple_cycles(G):
        start = cyc.index(min(cyc))
        cycles.append(cyc[start:] + cyc[:start])
    return sorted(cycles)


def graph_summary(G: nx.DiGraph) -> Dict[str, Any]:
    """Small diagnostic payload for verbose output."""
    return {
        "n_workflows": G.number_of_nodes(),
        "n_dependencies": G.number_of_edges(),
        "acyclic": nx.is_directed_acyclic_graph(G),
    }
