"""Circular band selection.

Every circular link is routed through the top or the bottom band. The
choice is a fixed sequence of deterministic passes:

1. balanced initial assignment, inherited from endpoint nodes when set;
2. geometric refinement from node centres;
3. span-1 backlinks between nearby nodes forced to the bottom;
4. crossing repair among links leaving one source column;
5. congestion relief for targets with a very large top bundle;
6. a shared band for backlinks from one column into one target;
7. self-loops opposite the majority of their node's other circular links.

Passes 2-4 read node positions and only run once geometry exists. Links
tagged with a forced band are left alone by later passes of the same run.
"""

from __future__ import annotations

__all__ = [
    "compute_node_values",
    "non_self_cycle_count",
    "select_bands",
    "sync_bidirectional",
]

from collections import defaultdict

from circular_sankey.layout.config import LayoutContext
from circular_sankey.layout.constants import (
    BACKLINK_GEOMETRY_THRESHOLD,
    CONGESTION_THRESHOLD,
)
from circular_sankey.parser.model import Band, Link, Node, SankeyGraph


def non_self_cycle_count(graph: SankeyGraph, node: Node) -> int:
    """Number of circular, non-self links incident to ``node``."""
    count = 0
    for li in node.source_links + node.target_links:
        link = graph.links[li]
        if link.circular and not graph.is_self_link(link):
            count += 1
    return count


def _circular(graph: SankeyGraph, self_links: bool = False) -> list[Link]:
    return [
        ln
        for ln in graph.active_links()
        if ln.circular and graph.is_self_link(ln) == self_links
    ]


def select_bands(ctx: LayoutContext) -> None:
    """Assign a band to every circular link (see module docstring)."""
    graph = ctx.graph
    for link in graph.links:
        link.forced_band = None

    _assign_initial(graph)
    if ctx.geometry:
        _refine_by_geometry(graph)
        _force_local_backlinks(graph)
        _repair_column_crossings(graph)
    _relieve_congestion(graph)
    _unify_column_target_bundles(graph)
    _band_self_links(graph)


def _assign_initial(graph: SankeyGraph) -> None:
    tops = bottoms = 0
    for link in graph.active_links():
        if not link.circular:
            continue
        source, target = graph.source(link), graph.target(link)
        if source.circular_band or target.circular_band:
            link.band = source.circular_band or target.circular_band
        else:
            link.band = Band.TOP if tops <= bottoms else Band.BOTTOM

        if link.band is Band.TOP:
            tops += 1
        else:
            bottoms += 1
        source.circular_band = link.band
        target.circular_band = link.band


def _refine_by_geometry(graph: SankeyGraph) -> None:
    threshold = (graph.y1 - graph.y0) * BACKLINK_GEOMETRY_THRESHOLD
    for link in _circular(graph):
        source, target = graph.source(link), graph.target(link)
        diff = target.center - source.center
        if target.column > source.column:
            link.band = Band.TOP if diff >= 0 else Band.BOTTOM
        elif abs(diff) > threshold:
            link.band = Band.TOP if diff < 0 else Band.BOTTOM


def _force_local_backlinks(graph: SankeyGraph) -> None:
    for link in _circular(graph):
        source, target = graph.source(link), graph.target(link)
        if source.column - target.column != 1:
            continue
        nearby = max(source.y1 - source.y0, target.y1 - target.y0)
        if abs(source.center - target.center) <= nearby:
            link.band = Band.BOTTOM
            link.forced_band = Band.BOTTOM


def _repair_column_crossings(graph: SankeyGraph) -> None:
    """Flip the last bottom link that sits above a top link in one source column.

    Within one source column, links are read in source-centre order. A
    bottom link from an upper node followed by a top link from a lower
    node would cross; the bottom one moves to the top band when its
    target lies above its source.
    """
    by_column: dict[int, list[Link]] = defaultdict(list)
    for link in _circular(graph):
        by_column[graph.source(link).column].append(link)

    for column in sorted(by_column):
        links = sorted(by_column[column], key=lambda ln: graph.source(ln).center)
        last_bottom = max(
            (i for i, ln in enumerate(links) if ln.band is Band.BOTTOM), default=-1
        )
        if last_bottom < 0:
            continue
        if not any(ln.band is Band.TOP for ln in links[last_bottom + 1:]):
            continue
        bad = links[last_bottom]
        if bad.forced_band is not None:
            continue
        if graph.target(bad).center < graph.source(bad).center:
            bad.band = Band.TOP
            bad.forced_band = Band.TOP


def _relieve_congestion(graph: SankeyGraph) -> None:
    by_target: dict[int, list[Link]] = defaultdict(list)
    for link in _circular(graph):
        by_target[link.target].append(link)

    for target in sorted(by_target):
        links = by_target[target]
        if len(links) < 2:
            continue
        top = [ln for ln in links if ln.band is Band.TOP]
        if len(top) < CONGESTION_THRESHOLD or len(top) != len(links):
            continue
        candidates = [
            ln for ln in top if graph.target(ln).column <= graph.source(ln).column
        ]
        if not candidates:
            continue
        chosen = min(candidates, key=lambda ln: (-graph.span(ln), -ln.width))
        chosen.band = Band.BOTTOM
        chosen.forced_band = Band.BOTTOM


def _unify_column_target_bundles(graph: SankeyGraph) -> None:
    bundles: dict[tuple[int, int], list[Link]] = defaultdict(list)
    for link in _circular(graph):
        source, target = graph.source(link), graph.target(link)
        if target.column < source.column:
            bundles[(source.column, link.target)].append(link)

    for key in sorted(bundles):
        links = bundles[key]
        if len(links) < 2:
            continue
        forced = {ln.forced_band for ln in links if ln.forced_band is not None}
        if len(forced) > 1:
            continue
        if forced:
            preferred = forced.pop()
        else:
            top = sum(ln.value for ln in links if ln.band is Band.TOP)
            bottom = sum(ln.value for ln in links if ln.band is not Band.TOP)
            preferred = Band.TOP if top >= bottom else Band.BOTTOM
        for link in links:
            if link.forced_band is None:
                link.band = preferred


def _band_self_links(graph: SankeyGraph) -> None:
    for link in _circular(graph, self_links=True):
        node = graph.source(link)
        top = bottom = 0
        for li in node.source_links + node.target_links:
            other = graph.links[li]
            if not other.circular or graph.is_self_link(other):
                continue
            if other.band is Band.TOP:
                top += 1
            elif other.band is Band.BOTTOM:
                bottom += 1
        if top or bottom:
            majority = Band.TOP if top >= bottom else Band.BOTTOM
            link.band = majority.opposite


def sync_bidirectional(ctx: LayoutContext) -> None:
    """Route both directions of a circular node pair through one band.

    The heavier link's band wins; on equal values top wins if either
    link is on top.
    """
    graph = ctx.graph
    done: set[frozenset[int]] = set()
    links = _circular(graph)
    for link in links:
        pair = frozenset((link.source, link.target))
        if pair in done:
            continue
        reverse = next(
            (
                ln
                for ln in links
                if ln.source == link.target and ln.target == link.source
            ),
            None,
        )
        if reverse is None:
            continue
        if link.value > reverse.value:
            band = link.band
        elif reverse.value > link.value:
            band = reverse.band
        else:
            band = Band.TOP if Band.TOP in (link.band, reverse.band) else Band.BOTTOM
        link.band = reverse.band = band
        done.add(pair)


def compute_node_values(ctx: LayoutContext) -> None:
    """Set node values, cycle membership and predominant band."""
    graph = ctx.graph
    for node in graph.nodes:
        out = [graph.links[li] for li in node.source_links]
        inc = [graph.links[li] for li in node.target_links]
        # Virtual nodes keep the value of the link they carry
        if node.fixed_value is not None:
            node.value = node.fixed_value
        elif not node.virtual:
            node.value = max(
                sum(ln.value for ln in out), sum(ln.value for ln in inc)
            )

        circular = [ln for ln in out + inc if ln.circular]
        node.part_of_cycle = bool(circular)
        if circular:
            tops = sum(1 for ln in circular if ln.band is Band.TOP)
            bottoms = sum(1 for ln in circular if ln.band is Band.BOTTOM)
            node.circular_band = Band.TOP if tops >= bottoms else Band.BOTTOM
        else:
            node.circular_band = None
