"""Value-to-pixel scaling and the final fit-to-canvas adjustment."""

from __future__ import annotations

__all__ = ["adjust_extents", "circular_margins", "scale_extents"]

import warnings

from circular_sankey.layout.config import LayoutContext
from circular_sankey.layout.constants import EPSILON
from circular_sankey.parser.model import Band, Node, SankeyGraph


def _column_scale(
    graph: SankeyGraph, column: list[Node], available: float
) -> tuple[float | None, bool]:
    """Scale one column allows, and whether its padding had to compress.

    Virtual nodes take no value and no padding budget. Columns with no
    value do not constrain the scale.
    """
    real = [n for n in column if not n.virtual]
    total = sum(n.value for n in real)
    if total <= 0:
        return None, False
    gaps = max(0, len(real) - 1)
    py = min(graph.py, available / gaps) if gaps else 0.0
    reserve = sum(n.port_reserve for n in real)
    numer = available - gaps * py - reserve
    return (numer / total if numer > 0 else 0.0), gaps > 0 and py < graph.py


def _port_reserve(graph: SankeyGraph, node: Node, port_gap: float) -> float:
    out = sum(1 for li in node.source_links if graph.links[li].circular)
    inc = sum(1 for li in node.target_links if graph.links[li].circular)
    return port_gap * max(out, inc)


def circular_margins(ctx: LayoutContext) -> dict[str, float]:
    """Room needed on each side of the nodes for circular bundles."""
    graph, config = ctx.graph, ctx.config
    max_column = graph.max_column()
    top = bottom = left = right = 0.0
    for link in graph.active_links():
        if not link.circular:
            continue
        stacked = link.width + config.circular_gap
        if link.band is Band.BOTTOM:
            bottom += stacked
        else:
            top += stacked
        if graph.target(link).column == 0:
            left += link.width
        if graph.source(link).column == max_column:
            right += link.width

    reach = config.vertical_margin + config.base_radius
    return {
        "top": top + reach if top > 0 else 0.0,
        "bottom": bottom + reach if bottom > 0 else 0.0,
        "left": left + config.base_radius if left > 0 else 0.0,
        "right": right + config.base_radius if right > 0 else 0.0,
    }


def _fit(a: float, b: float, limit: float) -> tuple[float, float]:
    """Shrink a pair of opposing margins so together they use at most ``limit``."""
    if a + b <= limit or a + b <= 0:
        return a, b
    k = limit / (a + b)
    return a * k, b * k


def scale_extents(ctx: LayoutContext) -> None:
    """Compute the shared scale, link widths, margins and node x extents."""
    graph, config = ctx.graph, ctx.config
    graph.py = config.node_padding
    port_gap = config.circular_port_gap
    for node in graph.nodes:
        node.port_reserve = 0.0 if node.virtual else _port_reserve(graph, node, port_gap)

    available = graph.y1 - graph.y0
    ky: float | None = None
    compressed = False
    for column in graph.columns():
        scale, squeezed = _column_scale(graph, column, available)
        compressed = compressed or squeezed
        if scale is not None:
            ky = scale if ky is None else min(ky, scale)
    if compressed:
        warnings.warn(
            f"Node padding compressed below {config.node_padding:g}px: "
            f"a column does not fit in {available:g}px",
            stacklevel=2,
        )
    graph.ky = max(ky or 0.0, 0.0) * config.scale
    _apply_widths(graph)

    margins = circular_margins(ctx)
    top, bottom = _fit(margins["top"], margins["bottom"], available / 2)
    left, right = _fit(margins["left"], margins["right"], (graph.x1 - graph.x0) / 2)
    graph.margin_top, graph.margin_bottom = top, bottom
    graph.margin_left, graph.margin_right = left, right

    graph.y0 += top
    graph.y1 -= bottom
    graph.x0 += left
    graph.x1 -= right
    if available > 0:
        graph.ky *= (graph.y1 - graph.y0) / available
        _apply_widths(graph)

    max_column = graph.max_column()
    step = (graph.x1 - graph.x0 - config.node_width) / max_column if max_column else 0.0
    for node in graph.nodes:
        node.x0 = graph.x0 + node.column * step
        node.x1 = node.x0 + config.node_width


def _apply_widths(graph: SankeyGraph) -> None:
    for link in graph.links:
        link.width = link.value * graph.ky


def adjust_extents(ctx: LayoutContext) -> None:
    """Scale the drawing down to the drawable height if it overflows.

    Content that already fits is never stretched.
    """
    graph = ctx.graph
    if not graph.nodes:
        return
    top = min(n.y0 for n in graph.nodes)
    bottom = max(n.y1 for n in graph.nodes)
    occupied = bottom - top
    drawable = graph.y1 - graph.y0
    if occupied <= drawable + EPSILON or occupied <= 0:
        return

    ratio = drawable / occupied

    def remap(y: float) -> float:
        return graph.y0 + (y - top) * ratio

    for node in graph.nodes:
        node.y0 = remap(node.y0)
        node.y1 = remap(node.y1)
    for link in graph.links:
        link.y0 = remap(link.y0)
        link.y1 = remap(link.y1)
        link.width *= ratio
    graph.ky *= ratio
    warnings.warn(
        f"Layout scaled by {ratio:.3f} to fit the {drawable:g}px drawable height",
        stacklevel=2,
    )
