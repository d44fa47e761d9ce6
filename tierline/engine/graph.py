"""Scope and capture graphs for debugging hoisted actions."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

from .scope import Scope, ScopeTree

try:
    import networkx as nx
except ModuleNotFoundError:  # pragma: no cover
    nx = None

try:
    import pydot
except ModuleNotFoundError:  # pragma: no cover
    pydot = None

log = logging.getLogger(__name__)

KIND_COLORS = {
    "module": "#90CAF9",
    "function": "#C5E1A5",
    "block": "#ECEFF1",
    "class": "#FFE082",
    "catch": "#F8BBD0",
}
ACTION_COLOR = "#FFAB91"


def _label(scope: Scope) -> str:
    names = ", ".join(sorted(scope.bindings)) or "-"
    return f"{scope.kind} ({scope.node.type_name})\\n{names}"


def scope_graph(tree: ScopeTree, actions: Optional[Iterable] = None):
    """Scopes as nodes, parent -> child edges and action capture edges.

    A capture edge runs from an inline action's scope to the scope that
    owns each binding the action captured; the edge's ``names`` attribute
    lists the captured names in order.
    """
    if nx is None:
        raise RuntimeError("Scope graphs require networkx to be installed")

    graph = nx.DiGraph()
    for scope in tree.all_scopes():
        graph.add_node(
            scope.stable_id(),
            kind=scope.kind,
            node=scope.node.type_name,
            bindings=sorted(scope.bindings),
            depth=scope.depth,
            action=None,
        )
        if scope.parent is not None:
            graph.add_edge(scope.parent.stable_id(), scope.stable_id(), relation="parent")

    for action in actions or ():
        own = tree.scope_of(action.function)
        if own is None:
            continue
        source = own.stable_id()
        graph.nodes[source]["action"] = action.name or "inline action"
        for name in action.free_variables:
            binding = own.lookup(name)
            if binding is None:
                continue
            target = binding.scope.stable_id()
            if graph.has_edge(source, target):
                graph.edges[source, target]["names"].append(name)
            else:
                graph.add_edge(source, target, relation="capture", names=[name])
    log.debug(
        "scope graph: %d nodes, %d edges", graph.number_of_nodes(), graph.number_of_edges()
    )
    return graph


def export_graphviz(tree: ScopeTree, output_path, actions: Optional[Iterable] = None):
    """Write the scope graph as DOT (``.dot``) or render it by extension."""
    if pydot is None:
        raise RuntimeError("Graphviz export requires pydot to be installed")

    data = scope_graph(tree, actions)
    graph = pydot.Dot(
        "tierline_scopes",
        graph_type="digraph",
        rankdir="LR",
        splines="spline",
        fontname="Helvetica",
    )
    scopes = {scope.stable_id(): scope for scope in tree.all_scopes()}
    for node_id, attrs in data.nodes(data=True):
        label = _label(scopes[node_id])
        color = KIND_COLORS.get(attrs["kind"], "#B0BEC5")
        if attrs["action"]:
            label += f"\\n[{attrs['action']}]"
            color = ACTION_COLOR
        graph.add_node(
            pydot.Node(
                f'"{node_id}"',
                label=f'"{label}"',
                shape="box",
                style="filled,rounded",
                fillcolor=color,
                color="#34495e",
                fontname="Helvetica",
            )
        )
    for source, target, attrs in data.edges(data=True):
        if attrs["relation"] == "capture":
            edge = pydot.Edge(
                f'"{source}"',
                f'"{target}"',
                style="dashed",
                color="#7f8c8d",
                label=f'"{", ".join(attrs["names"])}"',
                penwidth="1.2",
                arrowsize="0.8",
            )
        else:
            edge = pydot.Edge(f'"{source}"', f'"{target}"', color="#34495e")
        graph.add_edge(edge)

    output_path = Path(output_path)
    if output_path.parent and not output_path.parent.exists():
        output_path.parent.mkdir(parents=True, exist_ok=True)
    fmt = output_path.suffix.lstrip(".") or "dot"
    if fmt in ("dot", "gv"):
        graph.write_raw(str(output_path))
    else:
        graph.write(str(output_path), format=fmt)
    print(f"  ✓ Scope graph exported → {output_path}")
    return output_path


__all__ = ["scope_graph", "export_graphviz", "KIND_COLORS"]
