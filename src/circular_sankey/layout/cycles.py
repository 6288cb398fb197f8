"""Cycle classification: decide which links are circular.

In topological mode every elementary circuit is enumerated and, shortest
circuits first, the edge that closes each circuit back to its starting
node is marked circular. Self-loops are always circular. In ordering-key
mode a link is circular when its source key is not below its target key.
"""

from __future__ import annotations

__all__ = ["classify_cycles", "closing_edges", "uses_ordering_key"]

import networkx as nx

from circular_sankey.layout.config import LayoutContext
from circular_sankey.parser.model import SankeyGraph


def uses_ordering_key(ctx: LayoutContext) -> bool:
    """True when columns and cycles come from the nodes' horizontal sort key."""
    nodes = ctx.graph.nodes
    return (
        ctx.config.horizontal_sort
        and bool(nodes)
        and nodes[0].horizontal_sort is not None
    )


def closing_edges(graph: SankeyGraph) -> set[tuple[int, int]]:
    """Return the (source, target) node pairs that close an elementary circuit.

    Circuits are rotated to start at their lowest node index, which is the
    vertex Johnson's search starts them from; the closing edge runs from
    the circuit's last node back to that start.
    """
    G = nx.DiGraph()
    G.add_nodes_from(range(len(graph.nodes)))
    for link in graph.links:
        G.add_edge(link.source, link.target)

    circuits = []
    for cycle in nx.simple_cycles(G):
        start = cycle.index(min(cycle))
        circuits.append(cycle[start:] + cycle[:start])
    circuits.sort(key=len)

    return {(cycle[-1], cycle[0]) for cycle in circuits}


def classify_cycles(ctx: LayoutContext) -> None:
    """Mark every link circular or not and number the circular ones."""
    graph = ctx.graph
    counter = 0

    if uses_ordering_key(ctx):
        for link in graph.links:
            src = graph.nodes[link.source].horizontal_sort
            tgt = graph.nodes[link.target].horizontal_sort
            link.circular = not src < tgt
            if link.circular:
                link.circular_link_id = counter
                counter += 1
        return

    closing = closing_edges(graph)
    for link in graph.links:
        if link.source == link.target or (link.source, link.target) in closing:
            link.circular = True
            link.circular_link_id = counter
            counter += 1
        else:
            link.circular = False
            link.circular_link_id = None
