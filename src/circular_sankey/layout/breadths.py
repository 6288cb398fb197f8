"""Vertical node placement (breadths).

Three steps per run:

1. Initial placement: each column is ordered and stacked around the
   vertical centre of the drawable area.
2. Relaxation: a fixed number of sweeps nudge every connected node
   toward the weighted mean centre of its neighbours, with a decaying
   step size.
3. Collision resolution after every sweep: nodes are pushed apart in
   breadth order with room for self-loops and stacked circular ports,
   then each column is clamped back inside the drawable bounds.
"""

from __future__ import annotations

__all__ = ["ascending_breadth", "crosses_other_kind", "place_breadths", "self_link_clearance"]

from collections import Counter
from functools import cmp_to_key

from circular_sankey.layout.bands import non_self_cycle_count
from circular_sankey.layout.config import LayoutContext
from circular_sankey.layout.constants import (
    CYCLE_RELAX_FACTOR,
    MAX_GAP_FACTOR,
    RELAX_DECAY,
)
from circular_sankey.parser.model import Band, Link, Node, SankeyGraph

_BAND_RANK = {Band.TOP: 0, None: 1, Band.BOTTOM: 2}


def ascending_breadth(a: Node, b: Node) -> int:
    """Breadth order: by y0 among like nodes, top-band cycle nodes first otherwise."""
    if a.part_of_cycle == b.part_of_cycle:
        return (a.y0 > b.y0) - (a.y0 < b.y0)
    if a.circular_band is Band.TOP or b.circular_band is Band.BOTTOM:
        return -1
    return 1


def self_link_clearance(graph: SankeyGraph, node: Node, base_radius: float) -> tuple[float, float]:
    """Room a node's self-loops need above and below it."""
    top = bottom = 0.0
    for li in node.source_links:
        link = graph.links[li]
        if not link.circular or not graph.is_self_link(link):
            continue
        radius = base_radius + link.width / 2
        height = radius * 2 + link.width
        if link.band is Band.BOTTOM:
            bottom = max(bottom, height)
        else:
            top = max(top, height)
    return top, bottom


def _height(graph: SankeyGraph, node: Node) -> float:
    return node.value * graph.ky


def _column_order(ctx: LayoutContext, nodes: list[Node]) -> list[Node]:
    graph = ctx.graph
    if ctx.config.vertical_sort:
        return sorted(nodes, key=lambda n: (-n.vertical_sort, n.part_of_cycle))
    return sorted(
        nodes,
        key=lambda n: (_BAND_RANK[n.circular_band], non_self_cycle_count(graph, n)),
    )


# ---------------------------------------------------------------------------
# Initial placement
# ---------------------------------------------------------------------------


def _initial_placement(ctx: LayoutContext) -> None:
    graph, config = ctx.graph, ctx.config
    available = graph.y1 - graph.y0
    middle = graph.y0 + available / 2

    for column in graph.columns():
        nodes = _column_order(ctx, column)
        heights = [_height(graph, n) for n in nodes]
        if len(nodes) == 1:
            nodes[0].y0 = middle - heights[0] / 2
            nodes[0].y1 = nodes[0].y0 + heights[0]
            continue

        total_gap = available - sum(heights)
        total_gap = max(0.0, min(total_gap, MAX_GAP_FACTOR * config.node_padding * (len(nodes) - 1)))
        gap = total_gap / (len(nodes) - 1)

        if config.set_positions:
            y = graph.y0
        else:
            y = graph.y0 + (available - sum(heights) - total_gap) / 2
        for node, height in zip(nodes, heights):
            inset = 0.0
            if node.part_of_cycle and not config.set_positions:
                # Mirrored toward the midline
                inset = config.cycle_inset if node.circular_band is Band.TOP else -config.cycle_inset
            node.y0 = y + inset
            node.y1 = node.y0 + height
            y += height + gap


# ---------------------------------------------------------------------------
# Relaxation
# ---------------------------------------------------------------------------


def _real_endpoint(graph: SankeyGraph, link: Link, end: str) -> Node:
    node = graph.source(link) if end == "source" else graph.target(link)
    if node.virtual and node.replaced_link is not None:
        replaced = graph.links[node.replaced_link]
        return graph.source(replaced) if end == "source" else graph.target(replaced)
    return node


def _weighted_mean(
    ctx: LayoutContext, links: list[Link], end: str, chain_length: Counter
) -> float | None:
    graph = ctx.graph
    circular_weight = ctx.config.circular_relaxation_weight
    total_w = total_y = 0.0
    for link in links:
        w = link.value
        if not w:
            continue
        if link.parent_link is not None and chain_length[link.parent_link] > 1:
            w /= chain_length[link.parent_link]
        if link.circular:
            if not circular_weight:
                continue
            w *= circular_weight
        total_w += w
        total_y += w * _real_endpoint(graph, link, end).center
    return total_y / total_w if total_w else None


def _relax(ctx: LayoutContext, alpha: float, chain_length: Counter) -> None:
    graph = ctx.graph
    for column in graph.columns():
        for node in column:
            if not node.source_links and not node.target_links:
                continue
            if len(node.target_links) == 1:
                source = graph.source(graph.links[node.target_links[0]])
                if len(source.source_links) == 1:
                    height = node.y1 - node.y0
                    node.y0 = source.y0
                    node.y1 = node.y0 + height
                    continue

            outgoing = [graph.links[li] for li in node.source_links]
            incoming = [graph.links[li] for li in node.target_links]
            to_targets = _weighted_mean(ctx, outgoing, "target", chain_length)
            to_sources = _weighted_mean(ctx, incoming, "source", chain_length)
            if to_targets is not None and to_sources is not None:
                mean = (to_targets + to_sources) / 2
            elif to_targets is not None:
                mean = to_targets
            elif to_sources is not None:
                mean = to_sources
            else:
                continue

            step = alpha
            if node.part_of_cycle and non_self_cycle_count(graph, node) > 0:
                step *= CYCLE_RELAX_FACTOR
            dy = (mean - node.center) * step
            node.y0 += dy
            node.y1 += dy


# ---------------------------------------------------------------------------
# Collisions
# ---------------------------------------------------------------------------


def _resolve_collisions(ctx: LayoutContext) -> None:
    graph, config = ctx.graph, ctx.config
    padding, min_padding = config.node_padding, config.node_min_padding
    available = graph.y1 - graph.y0

    for column in graph.columns():
        if config.vertical_sort:
            nodes = sorted(column, key=lambda n: -n.vertical_sort)
        else:
            nodes = sorted(column, key=cmp_to_key(ascending_breadth))
        for node in nodes:
            node.self_clearance_top, node.self_clearance_bottom = self_link_clearance(
                graph, node, config.base_radius
            )

        real_height = sum(_height(graph, n) for n in nodes if not n.virtual)
        clearance = sum(
            n.self_clearance_top + n.self_clearance_bottom + n.port_reserve for n in nodes
        )
        spare = available - real_height - clearance
        if spare > 0:
            max_padding = min(padding * MAX_GAP_FACTOR, spare / max(1, len(nodes) - 1))
        else:
            max_padding = padding

        # Push overlapping nodes down
        y = graph.y0
        for i, node in enumerate(nodes):
            y += node.self_clearance_top
            dy = y - node.y0
            if dy > 0:
                node.y0 += dy
                node.y1 += dy
            gap = min(padding, max_padding) if i < len(nodes) - 1 else 0.0
            y = node.y1 + node.port_reserve + gap + node.self_clearance_bottom

        # Push the column back up if the last node overflows the bottom
        dy = y - graph.y1
        if dy > 0:
            last = nodes[-1]
            last.y0 -= dy
            last.y1 -= dy
            y = last.y0 - last.self_clearance_top
            for i in range(len(nodes) - 2, -1, -1):
                node = nodes[i]
                dy = node.y1 + node.port_reserve + min_padding + node.self_clearance_bottom - y
                if dy > 0:
                    node.y0 -= dy
                    node.y1 -= dy
                y = node.y0 - node.self_clearance_top

        _center_real_nodes(graph, nodes)
        _clamp_column(graph, nodes)


def crosses_other_kind(nodes: list[Node], y0: float, y1: float, virtual: bool) -> bool:
    """Whether ``[y0, y1]`` would overlap a node of the opposite kind in ``nodes``."""
    return any(
        n.virtual is not virtual and y0 < n.y1 and n.y0 < y1 for n in nodes
    )


def _center_real_nodes(graph: SankeyGraph, nodes: list[Node]) -> None:
    """Centre the real nodes of a column that also carries virtual nodes.

    The shift is dropped when it would put a real node on a virtual one,
    since the chain through that virtual node would then cross it.
    """
    real = [n for n in nodes if not n.virtual]
    if not real or len(real) == len(nodes):
        return
    top = min(n.y0 for n in real)
    span = max(n.y1 for n in real) - top
    available = graph.y1 - graph.y0
    if span >= available * 0.5:
        return
    shift = (available - span) / 2 - (top - graph.y0)
    if any(crosses_other_kind(nodes, n.y0 + shift, n.y1 + shift, False) for n in real):
        return
    for node in real:
        node.y0 += shift
        node.y1 += shift


def _clamp_column(graph: SankeyGraph, nodes: list[Node]) -> None:
    lower = graph.y0 - min(n.y0 for n in nodes)
    upper = graph.y1 - max(n.y1 for n in nodes)
    if lower <= upper:
        shift = max(lower, min(0.0, upper))
    else:
        # Taller than the drawable area: split the overflow
        shift = (lower + upper) / 2
    if shift:
        for node in nodes:
            node.y0 += shift
            node.y1 += shift


def place_breadths(ctx: LayoutContext) -> None:
    """Place, relax and de-collide every node; marks geometry as available."""
    graph, config = ctx.graph, ctx.config
    _initial_placement(ctx)
    ctx.geometry = True
    if config.set_positions or not graph.nodes:
        return

    chain_length = Counter(
        ln.parent_link for ln in graph.links if ln.parent_link is not None
    )
    _resolve_collisions(ctx)
    alpha = 1.0
    for _ in range(config.iterations):
        alpha *= RELAX_DECAY
        _relax(ctx, alpha, chain_length)
        _resolve_collisions(ctx)
