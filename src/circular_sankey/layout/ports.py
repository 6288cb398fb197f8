"""Port ordering: where each link attaches to its nodes.

Every node orders its outgoing and incoming links independently into
three groups, top-band circular links first, then ordinary links, then
bottom-band circular links, and hands out contiguous, width-sized slices
of its vertical extent in that order. Consecutive ports get a small gap
when either of them is circular. The bottom group is stacked upward from
the node's lower edge so bottom links hug it.
"""

from __future__ import annotations

__all__ = ["order_ports", "order_source_ports", "order_target_ports"]

from typing import Any

from circular_sankey.layout.config import LayoutContext
from circular_sankey.layout.constants import EPSILON
from circular_sankey.parser.model import Band, Link, Node, SankeyGraph


def _type_rank(ctx: LayoutContext, link: Link) -> int:
    order = ctx.config.link_type_order
    if not order:
        return 0
    try:
        return order.index(link.type)
    except ValueError:
        return len(order)


def _slope(node: Node, other: Node, dx: float) -> float:
    """Projected slope from ``node`` toward ``other``; raw offset if not to the side."""
    dy = other.center - node.center
    return dy / dx if dx > EPSILON else dy


def _circular_key(graph: SankeyGraph, link: Link, other: Node) -> tuple[Any, ...]:
    """Self-loops last, then span: short first on top, long first on bottom."""
    span = graph.span(link)
    return (
        graph.is_self_link(link),
        span if link.band is Band.TOP else -span,
        link.width,
        other.center,
        link.index,
    )


def _split(graph: SankeyGraph, indices: list[int]) -> tuple[list[Link], list[Link], list[Link]]:
    top, middle, bottom = [], [], []
    for li in indices:
        link = graph.links[li]
        if not link.circular:
            middle.append(link)
        elif link.band is Band.BOTTOM:
            bottom.append(link)
        else:
            top.append(link)
    return top, middle, bottom


def _assign(
    node: Node,
    top: list[Link],
    middle: list[Link],
    bottom: list[Link],
    attr: str,
    gap: float,
) -> list[int]:
    """Write port coordinates into ``attr`` and return the new link order."""
    cursor = node.y0
    previous: Link | None = None
    for link in top + middle:
        if previous is not None and (previous.circular or link.circular):
            cursor += gap
        setattr(link, attr, cursor + link.width / 2)
        cursor += link.width
        previous = link

    if bottom:
        extent = sum(ln.width for ln in bottom) + gap * (len(bottom) - 1)
        lead = gap if previous is not None else 0.0
        anchor = max(node.y1, cursor + lead + extent)
        for link in reversed(bottom):
            setattr(link, attr, anchor - link.width / 2)
            anchor -= link.width + gap

    return [ln.index for ln in top + middle + bottom]


def order_source_ports(ctx: LayoutContext) -> None:
    """Order every node's outgoing links and set their ``y0``."""
    graph = ctx.graph
    gap = ctx.config.circular_port_gap
    for node in graph.nodes:
        top, middle, bottom = _split(graph, node.source_links)

        def circular_key(link: Link) -> tuple[Any, ...]:
            return _circular_key(graph, link, graph.target(link))

        def ordinary_key(link: Link) -> tuple[Any, ...]:
            target = graph.target(link)
            return (
                _slope(node, target, target.x0 - node.x1),
                _type_rank(ctx, link),
                link.index,
            )

        top.sort(key=circular_key)
        bottom.sort(key=circular_key)
        middle.sort(key=ordinary_key)
        node.source_links = _assign(node, top, middle, bottom, "y0", gap)


def order_target_ports(ctx: LayoutContext) -> None:
    """Order every node's incoming links and set their ``y1``."""
    graph = ctx.graph
    gap = ctx.config.circular_port_gap
    for node in graph.nodes:
        top, middle, bottom = _split(graph, node.target_links)

        def circular_key(link: Link) -> tuple[Any, ...]:
            return _circular_key(graph, link, graph.source(link))

        def ordinary_key(link: Link) -> tuple[Any, ...]:
            source = graph.source(link)
            return (
                _slope(node, source, node.x0 - source.x1),
                _type_rank(ctx, link),
                link.index,
            )

        top.sort(key=circular_key)
        bottom.sort(key=circular_key)
        middle.sort(key=ordinary_key)
        node.target_links = _assign(node, top, middle, bottom, "y1", gap)


def order_ports(ctx: LayoutContext) -> None:
    """One round of source then target port ordering."""
    order_source_ports(ctx)
    order_target_ports(ctx)
