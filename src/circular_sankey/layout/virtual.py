"""Virtual routing chains for long-span links.

A non-circular link spanning two or more columns is replaced, while the
layout runs, by a chain of virtual nodes (one per intermediate column)
joined by unit-span virtual links. The replaced link stays in the link
table, marked ``REPLACED`` and detached from its nodes' incident lists.

Once geometry is final the chain is split off into the graph's side
collections and the replaced link gets a stitched path: either the
concatenated chain segments or one smooth curve, depending on the route
mode.
"""

from __future__ import annotations

__all__ = [
    "excise_virtual_chains",
    "insert_virtual_nodes",
    "straighten_virtual_nodes",
]

from collections import defaultdict

from circular_sankey.layout.breadths import crosses_other_kind
from circular_sankey.layout.circular import link_curve
from circular_sankey.layout.config import LayoutContext
from circular_sankey.layout.constants import VIRTUAL_NODE_PREFIX
from circular_sankey.parser.model import (
    LineTo,
    Link,
    LinkKind,
    MoveTo,
    Node,
    PathCommand,
    RouteMode,
    SankeyGraph,
)


def insert_virtual_nodes(ctx: LayoutContext) -> None:
    """Split every long forward link into a chain of unit-span links."""
    graph = ctx.graph
    if not ctx.config.use_virtual_routes:
        return

    counter = 0
    for li in range(graph.real_link_count):
        link = graph.links[li]
        if link.circular or link.kind is not LinkKind.NORMAL:
            continue
        source, target = graph.source(link), graph.target(link)
        if target.column - source.column < 2:
            continue

        link.kind = LinkKind.REPLACED
        source.source_links.remove(li)
        target.target_links.remove(li)

        previous = source.index
        for step in range(1, target.column - source.column):
            node = Node(
                id=f"{VIRTUAL_NODE_PREFIX}{counter}",
                index=len(graph.nodes),
                value=link.value,
                depth=source.depth + step,
                height=source.height - step,
                column=source.column + step,
                virtual=True,
                replaced_link=li,
            )
            counter += 1
            graph.nodes.append(node)
            _append_virtual_link(graph, link, previous, node.index)
            previous = node.index
        _append_virtual_link(graph, link, previous, target.index)


def _append_virtual_link(graph: SankeyGraph, parent: Link, source: int, target: int) -> None:
    link = Link(
        index=len(graph.links),
        source=source,
        target=target,
        value=parent.value,
        data=parent.data,
        type=parent.type,
        kind=LinkKind.VIRTUAL,
        parent_link=parent.index,
    )
    graph.links.append(link)
    graph.nodes[source].source_links.append(link.index)
    graph.nodes[target].target_links.append(link.index)


def chain_links(graph: SankeyGraph, replaced: Link) -> list[Link]:
    """Virtual links carrying ``replaced``, in order from source to target."""
    return [
        ln
        for ln in graph.links[graph.real_link_count:]
        if ln.parent_link == replaced.index
    ]


def straighten_virtual_nodes(ctx: LayoutContext) -> None:
    """Line each virtual node up with its chain neighbour.

    A virtual node follows its virtual predecessor, else its virtual
    successor, else the real target the chain ends in. Ports on the node
    move with it. A node stays put when the move would land it on a real
    node of its column.
    """
    graph = ctx.graph
    real_by_column: dict[int, list[Node]] = defaultdict(list)
    for node in graph.nodes[: graph.real_node_count]:
        real_by_column[node.column].append(node)

    for node in graph.nodes[graph.real_node_count:]:
        if not node.virtual or not node.target_links or not node.source_links:
            continue
        incoming = graph.links[node.target_links[0]]
        outgoing = graph.links[node.source_links[0]]
        predecessor = graph.source(incoming)
        if predecessor.virtual:
            dy = predecessor.y0 - node.y0
        else:
            dy = graph.target(outgoing).y0 - node.y0
        if dy == 0:
            continue
        if crosses_other_kind(real_by_column[node.column], node.y0 + dy, node.y1 + dy, True):
            continue
        node.y0 += dy
        node.y1 += dy
        incoming.y1 += dy
        outgoing.y0 += dy


# ---------------------------------------------------------------------------
# Excision
# ---------------------------------------------------------------------------


def _curve_crosses_nodes(graph: SankeyGraph, link: Link) -> bool:
    """Whether a smooth curve for ``link`` would pass through a column's node."""
    source, target = graph.source(link), graph.target(link)
    first, last = source.column + 1, target.column - 1
    steps = last - first + 1
    half = link.width / 2
    for i, column in enumerate(range(first, last + 1), start=1):
        t = i / (steps + 1)
        # Cubic Bezier with control points (y0, y0, y1, y1)
        y = ((1 - t) ** 3 + 3 * t * (1 - t) ** 2) * link.y0 + (
            3 * t**2 * (1 - t) + t**3
        ) * link.y1
        top, bottom = y - half, y + half
        for node in graph.nodes:
            if node.column != column or node.replaced_link == link.index:
                continue
            if node.y0 < top < node.y1 or node.y0 < bottom < node.y1:
                return True
            if top < node.y0 and bottom > node.y1:
                return True
    return False


def _stitch(chain: list[Link]) -> list[PathCommand]:
    path: list[PathCommand] = []
    for segment in chain:
        for i, cmd in enumerate(segment.path):
            if i == 0 and path and isinstance(cmd, MoveTo):
                path.append(LineTo(cmd.x, cmd.y))
            else:
                path.append(cmd)
    return path


def excise_virtual_chains(ctx: LayoutContext) -> None:
    """Give replaced links their final paths and split off the chains."""
    graph = ctx.graph
    mode = ctx.config.route

    for link in graph.links[: graph.real_link_count]:
        if link.kind is not LinkKind.REPLACED:
            continue
        chain = chain_links(graph, link)
        if not chain:
            continue
        first, last = chain[0], chain[-1]
        link.y0, link.width = first.y0, first.width
        link.y1 = last.y1
        link.x0 = graph.source(link).x1
        link.x1 = graph.target(link).x0

        if mode is RouteMode.CHAINED:
            link.use_virtual = True
        elif mode is RouteMode.CURVED:
            link.use_virtual = _curve_crosses_nodes(graph, link)
        else:
            link.use_virtual = False

        if link.use_virtual:
            link.path = _stitch(chain)
        else:
            link.path = link_curve(link.x0, link.y0, link.x1, link.y1)
        graph.replaced_links.append(link)

    # Real nodes reference the replaced link again, in the port slot its
    # first/last segment occupied.
    for node in graph.nodes[: graph.real_node_count]:
        node.source_links = [_visible(graph, li) for li in node.source_links]
        node.target_links = [_visible(graph, li) for li in node.target_links]

    graph.virtual_nodes = graph.nodes[graph.real_node_count:]
    graph.virtual_links = graph.links[graph.real_link_count:]
    del graph.nodes[graph.real_node_count:]
    del graph.links[graph.real_link_count:]


def _visible(graph: SankeyGraph, li: int) -> int:
    link = graph.links[li]
    if link.kind is LinkKind.VIRTUAL and link.parent_link is not None:
        return link.parent_link
    return li
