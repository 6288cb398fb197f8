"""Column assignment.

Depth and height are wave distances over the non-circular links: every
node starts in the first wave, and each wave pushes its non-circular
neighbours into the next. Because circular links are excluded the
remaining graph is acyclic and the waves always drain.
"""

from __future__ import annotations

__all__ = ["ALIGNERS", "assign_columns", "compute_depths"]

from typing import Callable

from circular_sankey.layout.config import LayoutContext
from circular_sankey.layout.cycles import uses_ordering_key
from circular_sankey.parser.model import Node, SankeyGraph


def compute_depths(graph: SankeyGraph) -> int:
    """Set ``depth`` and ``height`` on every node.

    Returns the number of waves of the forward propagation.
    """
    waves = _propagate(graph, forward=True)
    _propagate(graph, forward=False)
    return waves


def _propagate(graph: SankeyGraph, forward: bool) -> int:
    current = list(range(len(graph.nodes)))
    x = 0
    while current:
        following: list[int] = []
        seen: set[int] = set()
        for idx in current:
            node = graph.nodes[idx]
            if forward:
                node.depth = x
                incident = node.source_links
            else:
                node.height = x
                incident = node.target_links
            for li in incident:
                link = graph.links[li]
                if link.circular:
                    continue
                other = link.target if forward else link.source
                if other not in seen:
                    seen.add(other)
                    following.append(other)
        current = following
        x += 1
    return x


# ---------------------------------------------------------------------------
# Alignment
# ---------------------------------------------------------------------------


def _left(graph: SankeyGraph, node: Node, n: int) -> int:
    return node.depth


def _right(graph: SankeyGraph, node: Node, n: int) -> int:
    return n - 1 - node.height


def _justify(graph: SankeyGraph, node: Node, n: int) -> int:
    return node.depth if node.source_links else n - 1


def _center(graph: SankeyGraph, node: Node, n: int) -> int:
    if node.target_links:
        return node.depth
    if node.source_links:
        return min(graph.target(graph.links[li]).depth for li in node.source_links) - 1
    return 0


ALIGNERS: dict[str, Callable[[SankeyGraph, Node, int], int]] = {
    "left": _left,
    "right": _right,
    "center": _center,
    "justify": _justify,
}


def assign_columns(ctx: LayoutContext) -> None:
    """Assign each node its column.

    With an ordering key, nodes are stably ordered by key and the column
    counter advances each time the key changes. Otherwise the configured
    alignment maps depth/height to a column.
    """
    graph = ctx.graph
    waves = compute_depths(graph)

    if uses_ordering_key(ctx):
        order = sorted(graph.nodes, key=lambda n: n.horizontal_sort)
        column = 0
        current = order[0].horizontal_sort
        for node in order:
            if node.horizontal_sort != current:
                column += 1
                current = node.horizontal_sort
            node.column = column
        return

    align = ALIGNERS[ctx.config.align]
    for node in graph.nodes:
        node.column = max(0, align(graph, node, waves))
