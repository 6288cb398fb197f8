"""Circular link geometry and link paths.

Circular links are routed per band. Within a band they are processed in
order of column span (shortest first). Each link stacks its horizontal
run outside every previously processed link whose column range overlaps
its own, so runs nest without overlapping:

    buffer = max(prev.vertical_buffer + prev.width / 2 + gap + base_shift)
    vertical_buffer = buffer + width / 2

``base_shift`` compensates for the two links starting from different
baselines. The horizontal run sits ``vertical_margin + vertical_buffer``
beyond the link's baseline, the outermost node edge across its column
range. The baseline is pulled further out when needed so both legs have
room for their two arcs.

Self-loops are placed first and only stack against other self-loops of
the same node, so a lone loop always sits ``2 * radius + width`` beyond
its node edge. Other links stack outside every loop in their columns.

Ordinary links get a horizontal cubic curve. Long ordinary links that
would pass through an intermediate node get a bypass path instead.
"""

from __future__ import annotations

__all__ = ["build_circular_paths", "build_link_paths", "link_curve"]

from collections import defaultdict

from circular_sankey.layout.config import LayoutContext
from circular_sankey.layout.constants import NODE_BUFFER
from circular_sankey.parser.model import (
    ArcTo,
    Band,
    CircularPathData,
    CurveTo,
    LineTo,
    Link,
    LinkKind,
    MoveTo,
    Node,
    PathCommand,
    SankeyGraph,
)


def link_curve(x0: float, y0: float, x1: float, y1: float) -> list[PathCommand]:
    """Horizontal cubic from (x0, y0) to (x1, y1), tangents flat at both ends."""
    xm = (x0 + x1) / 2
    return [MoveTo(x0, y0), CurveTo(xm, y0, xm, y1, x1, y1)]


def _curve_y_at(x0: float, y0: float, x1: float, y1: float, x: float) -> float:
    """Y of :func:`link_curve` at horizontal position ``x``."""
    if x1 <= x0:
        return y0
    lo, hi = 0.0, 1.0
    for _ in range(40):
        t = (lo + hi) / 2
        # x(t) with control abscissae x0, xm, xm, x1
        xt = x0 + (x1 - x0) * (1.5 * t * (1 - t) + t**3)
        if xt < x:
            lo = t
        else:
            hi = t
    t = (lo + hi) / 2
    s = (1 - t) ** 3 + 3 * t * (1 - t) ** 2
    return s * y0 + (1 - s) * y1


# ---------------------------------------------------------------------------
# Circular links
# ---------------------------------------------------------------------------


def _range(graph: SankeyGraph, link: Link) -> tuple[int, int]:
    a, b = graph.source(link).column, graph.target(link).column
    return min(a, b), max(a, b)


def _ranges_overlap(graph: SankeyGraph, a: Link, b: Link) -> bool:
    a_lo, a_hi = _range(graph, a)
    b_lo, b_hi = _range(graph, b)
    return a_hi >= b_lo and b_hi >= a_lo


def _stack_order(graph: SankeyGraph, links: list[Link]) -> list[Link]:
    return sorted(
        links,
        key=lambda ln: (
            not graph.is_self_link(ln),
            graph.span(ln),
            graph.source(ln).center,
            ln.width,
            ln.index,
        ),
    )


def _stacks_against(graph: SankeyGraph, link: Link, prev: Link) -> bool:
    """Whether ``link`` must clear the run of the already placed ``prev``."""
    if graph.is_self_link(link):
        return graph.is_self_link(prev) and prev.source == link.source
    return _ranges_overlap(graph, link, prev)


def _assign_radii(ctx: LayoutContext, ordered: list[Link]) -> None:
    """Arc radii grow outward with position among same-column siblings."""
    graph, config = ctx.graph, ctx.config
    gap = config.circular_gap
    by_source: dict[int, list[Link]] = defaultdict(list)
    by_target: dict[int, list[Link]] = defaultdict(list)
    for link in ordered:
        by_source[graph.source(link).column].append(link)
        by_target[graph.target(link).column].append(link)

    for sides, small_attr, large_attr in (
        (by_source, "right_small_arc_radius", "right_large_arc_radius"),
        (by_target, "left_small_arc_radius", "left_large_arc_radius"),
    ):
        for group in sides.values():
            offset = 0.0
            for i, link in enumerate(group):
                data = link.circular_path_data
                if graph.is_self_link(link):
                    radius = config.base_radius + link.width / 2
                    setattr(data, small_attr, radius)
                    setattr(data, large_attr, radius)
                else:
                    small = config.base_radius + link.width / 2 + offset
                    setattr(data, small_attr, small)
                    setattr(data, large_attr, small + i * gap)
                offset += link.width


def _base_y(ctx: LayoutContext, link: Link, band: Band) -> float:
    """Outermost node edge across the link's columns, pulled out for leg room."""
    graph, config = ctx.graph, ctx.config
    data = link.circular_path_data
    source, target = graph.source(link), graph.target(link)
    legs = (
        data.right_small_arc_radius + data.right_large_arc_radius,
        data.left_small_arc_radius + data.left_large_arc_radius,
    )
    margin = config.vertical_margin

    if graph.is_self_link(link):
        radius = config.base_radius + link.width / 2
        compact = radius * 2 + link.width
        if band is Band.TOP:
            return min(source.y0 - compact + margin + link.width / 2,
                       link.y0 - legs[0] + margin, link.y1 - legs[1] + margin)
        return max(source.y1 + compact - margin - link.width / 2,
                   link.y0 + legs[0] - margin, link.y1 + legs[1] - margin)

    lo, hi = _range(graph, link)
    real = [
        n for n in graph.nodes
        if not n.virtual and lo <= n.column <= hi
    ]
    if band is Band.TOP:
        edge = min([source.y0, target.y0] + [n.y0 for n in real])
        return min(edge, link.y0 - legs[0] + margin, link.y1 - legs[1] + margin)
    edge = max([source.y1, target.y1] + [n.y1 for n in real])
    return max(edge, link.y0 + legs[0] - margin, link.y1 + legs[1] - margin)


def _stack_band(ctx: LayoutContext, ordered: list[Link], band: Band) -> None:
    graph, gap = ctx.graph, ctx.config.circular_gap
    placed: list[Link] = []
    for link in ordered:
        data = link.circular_path_data
        buffer = 0.0
        for prev in placed:
            if not _stacks_against(graph, link, prev):
                continue
            prev_data = prev.circular_path_data
            if band is Band.TOP:
                shift = data.base_y - prev_data.base_y
            else:
                shift = prev_data.base_y - data.base_y
            buffer = max(
                buffer, prev_data.vertical_buffer + prev.width / 2 + gap + shift
            )
        data.vertical_buffer = buffer + link.width / 2
        placed.append(link)


def _finish_geometry(ctx: LayoutContext, link: Link, band: Band) -> None:
    graph, config = ctx.graph, ctx.config
    data = link.circular_path_data
    source, target = graph.source(link), graph.target(link)
    data.source_x = source.x1
    data.target_x = target.x0
    data.source_y = link.y0
    data.target_y = link.y1
    data.right_node_buffer = NODE_BUFFER
    data.left_node_buffer = NODE_BUFFER
    data.right_inner_extent = data.source_x + NODE_BUFFER
    data.left_inner_extent = data.target_x - NODE_BUFFER
    data.right_full_extent = data.right_inner_extent + data.right_large_arc_radius
    data.left_full_extent = data.left_inner_extent - data.left_large_arc_radius

    reach = config.vertical_margin + data.vertical_buffer
    if band is Band.TOP:
        data.vertical_full_extent = data.base_y - reach
        data.vertical_right_inner_extent = data.vertical_full_extent + data.right_large_arc_radius
        data.vertical_left_inner_extent = data.vertical_full_extent + data.left_large_arc_radius
    else:
        data.vertical_full_extent = data.base_y + reach
        data.vertical_right_inner_extent = data.vertical_full_extent - data.right_large_arc_radius
        data.vertical_left_inner_extent = data.vertical_full_extent - data.left_large_arc_radius


def circular_path(link: Link) -> list[PathCommand]:
    """Port, outward arc, run at the computed extent, inward arc, port."""
    d = link.circular_path_data
    sweep = 0 if link.band is Band.TOP else 1
    sign = -1 if link.band is Band.TOP else 1
    return [
        MoveTo(d.source_x, d.source_y),
        LineTo(d.right_inner_extent, d.source_y),
        ArcTo(d.right_large_arc_radius, d.right_small_arc_radius, sweep,
              d.right_full_extent, d.source_y + sign * d.right_small_arc_radius),
        LineTo(d.right_full_extent, d.vertical_right_inner_extent),
        ArcTo(d.right_large_arc_radius, d.right_large_arc_radius, sweep,
              d.right_inner_extent, d.vertical_full_extent),
        LineTo(d.left_inner_extent, d.vertical_full_extent),
        ArcTo(d.left_large_arc_radius, d.left_large_arc_radius, sweep,
              d.left_full_extent, d.vertical_left_inner_extent),
        LineTo(d.left_full_extent, d.target_y + sign * d.left_small_arc_radius),
        ArcTo(d.left_large_arc_radius, d.left_small_arc_radius, sweep,
              d.left_inner_extent, d.target_y),
        LineTo(d.target_x, d.target_y),
    ]


def build_circular_paths(ctx: LayoutContext) -> None:
    """Compute geometry and paths for every circular link, then all other links."""
    graph = ctx.graph
    circular = [ln for ln in graph.active_links() if ln.circular]
    for link in circular:
        link.circular_path_data = CircularPathData()

    for band in (Band.TOP, Band.BOTTOM):
        in_band = [ln for ln in circular if (ln.band or Band.TOP) is band]
        ordered = _stack_order(graph, in_band)
        _assign_radii(ctx, ordered)
        for link in ordered:
            link.circular_path_data.base_y = _base_y(ctx, link, band)
        _stack_band(ctx, ordered, band)
        for link in ordered:
            _finish_geometry(ctx, link, band)
            link.path = circular_path(link)

    build_link_paths(ctx)


# ---------------------------------------------------------------------------
# Ordinary links and bypasses
# ---------------------------------------------------------------------------


def _obstacles(graph: SankeyGraph, link: Link) -> list[Node]:
    """Real nodes in intermediate columns that a direct curve would cut through."""
    source, target = graph.source(link), graph.target(link)
    x0, x1 = source.x1, target.x0
    half = link.width / 2
    hits = []
    for node in graph.nodes:
        if node.virtual or not source.column < node.column < target.column:
            continue
        y = _curve_y_at(x0, link.y0, x1, link.y1, (node.x0 + node.x1) / 2)
        if y + half > node.y0 and y - half < node.y1:
            hits.append(node)
    return hits


def bypass_path(ctx: LayoutContext, link: Link, obstacles: list[Node]) -> list[PathCommand]:
    """Route around ``obstacles`` on the side nearer the link's own ends."""
    graph, gap = ctx.graph, ctx.config.circular_gap
    source, target = graph.source(link), graph.target(link)
    half = link.width / 2
    above = min(n.y0 for n in obstacles) - half - gap
    below = max(n.y1 for n in obstacles) + half + gap
    mid = (link.y0 + link.y1) / 2
    clear = above if abs(mid - above) <= abs(below - mid) else below

    entry = min(n.x0 for n in obstacles) - NODE_BUFFER
    leave = max(n.x1 for n in obstacles) + NODE_BUFFER
    path = link_curve(source.x1, link.y0, entry, clear)
    path.append(LineTo(leave, clear))
    path.extend(link_curve(leave, clear, target.x0, link.y1)[1:])
    return path


def build_link_paths(ctx: LayoutContext) -> None:
    """Curves for every non-circular, non-replaced link."""
    graph = ctx.graph
    for link in graph.links:
        if link.circular or link.kind is LinkKind.REPLACED:
            continue
        link.bypass = False
        source, target = graph.source(link), graph.target(link)
        if link.kind is LinkKind.NORMAL and target.column - source.column >= 2:
            obstacles = _obstacles(graph, link)
            if obstacles:
                link.bypass = True
                link.path = bypass_path(ctx, link, obstacles)
                continue
        link.path = link_curve(source.x1, link.y0, target.x0, link.y1)
