"""Reusable geometric checks for laid-out Sankey graphs.

Each ``check_*`` function returns a list of :class:`Violation` records
instead of asserting, so tests can filter by severity and report every
problem at once.
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum

from circular_sankey.layout.config import SankeyConfig
from circular_sankey.parser.model import Band, SankeyGraph, path_endpoints

TOLERANCE = 1e-6


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass
class Violation:
    check: str
    severity: Severity
    message: str


def _finite(*values: float) -> bool:
    return all(math.isfinite(v) for v in values)


def check_coordinate_sanity(graph: SankeyGraph, config: SankeyConfig) -> list[Violation]:
    """Finite coordinates, positive extents, nodes inside the canvas."""
    out = []
    for node in graph.nodes:
        if not _finite(node.x0, node.x1, node.y0, node.y1):
            out.append(Violation("coordinates", Severity.ERROR, f"Node {node.id!r} has non-finite extent"))
            continue
        if node.y1 < node.y0 - TOLERANCE or node.x1 <= node.x0:
            out.append(Violation("coordinates", Severity.ERROR, f"Node {node.id!r} has inverted extent"))
        if node.x0 < -TOLERANCE or node.x1 > config.width + TOLERANCE:
            out.append(Violation("coordinates", Severity.ERROR, f"Node {node.id!r} outside canvas width"))
        if node.y0 < graph.y0 - TOLERANCE or node.y1 > graph.y1 + TOLERANCE:
            out.append(Violation("coordinates", Severity.ERROR, f"Node {node.id!r} outside drawable height"))
    for link in graph.links + graph.virtual_links:
        if not _finite(link.width, link.y0, link.y1) or link.width < 0:
            out.append(Violation("coordinates", Severity.ERROR, f"Link {link.index} has bad width/ports"))
        for x, y in path_endpoints(link.path):
            if not _finite(x, y):
                out.append(Violation("coordinates", Severity.ERROR, f"Link {link.index} path is not finite"))
                break
    return out


def check_value_conservation(graph: SankeyGraph) -> list[Violation]:
    """Node height is value times the shared scale."""
    out = []
    for node in graph.nodes:
        expected = node.value * graph.ky
        if abs((node.y1 - node.y0) - expected) > 1e-6 * max(1.0, expected):
            out.append(
                Violation(
                    "value",
                    Severity.ERROR,
                    f"Node {node.id!r} height {node.y1 - node.y0:.4f} != {expected:.4f}",
                )
            )
    return out


def check_node_overlap(graph: SankeyGraph) -> list[Violation]:
    """Real nodes sharing a column never overlap."""
    out = []
    for column in graph.columns():
        ordered = sorted(column, key=lambda n: n.y0)
        for upper, lower in zip(ordered, ordered[1:]):
            if lower.y0 < upper.y1 - TOLERANCE:
                out.append(
                    Violation(
                        "overlap",
                        Severity.ERROR,
                        f"Nodes {upper.id!r} and {lower.id!r} overlap in column {upper.column}",
                    )
                )
    return out


def check_virtual_overlap(graph: SankeyGraph) -> list[Violation]:
    """Virtual chain nodes never sit on a real node of their column.

    A chain segment enters and leaves its virtual node at the node's full
    height, so any overlap means the routed link crosses the real node.
    """
    out = []
    for vnode in graph.virtual_nodes:
        for node in graph.nodes:
            if node.column != vnode.column:
                continue
            if vnode.y0 < node.y1 - TOLERANCE and node.y0 < vnode.y1 - TOLERANCE:
                out.append(
                    Violation(
                        "virtual",
                        Severity.ERROR,
                        f"Virtual node {vnode.id!r} crosses {node.id!r} in column {node.column}",
                    )
                )
    return out


def check_self_loop_extent(graph: SankeyGraph, base_radius: float, gap: float) -> list[Violation]:
    """Self-loops stay within a compact distance of their own node.

    A lone loop reaches ``2 * (base_radius + w / 2) + w`` beyond the node
    edge (beyond the reserved port room for the bottom band). Loops
    stacked on one node add their own compact height plus the gap.
    """
    out = []
    groups = defaultdict(list)
    for link in graph.links:
        if link.circular and link.circular_path_data and graph.is_self_link(link):
            groups[(link.source, link.band or Band.TOP)].append(link)
    for (index, band), links in groups.items():
        node = graph.node(index)
        allowed = sum(2 * (base_radius + ln.width / 2) + ln.width for ln in links)
        allowed += gap * (len(links) - 1)
        for link in links:
            extent = link.circular_path_data.vertical_full_extent
            reach = node.y0 - extent if band is Band.TOP else extent - (node.y1 + node.port_reserve)
            if reach > allowed + TOLERANCE:
                out.append(
                    Violation(
                        "self-loop",
                        Severity.ERROR,
                        f"Self-loop {link.index} reaches {reach:.3f}px beyond "
                        f"{node.id!r} (limit {allowed:.3f})",
                    )
                )
    return out


def check_port_bounds(graph: SankeyGraph) -> list[Violation]:
    """Every port lies on its node, within the reserved circular-port room."""
    out = []
    for node in graph.nodes:
        low, high = node.y0 - TOLERANCE, node.y1 + node.port_reserve + TOLERANCE
        for li in node.source_links:
            link = graph.link(li)
            if link.y0 - link.width / 2 < low or link.y0 + link.width / 2 > high:
                out.append(Violation("ports", Severity.ERROR, f"Source port of link {li} off node {node.id!r}"))
        for li in node.target_links:
            link = graph.link(li)
            if link.y1 - link.width / 2 < low or link.y1 + link.width / 2 > high:
                out.append(Violation("ports", Severity.ERROR, f"Target port of link {li} off node {node.id!r}"))
    return out


def _column_range(graph: SankeyGraph, link) -> tuple[int, int]:
    a, b = graph.source(link).column, graph.target(link).column
    return min(a, b), max(a, b)


def check_band_separation(graph: SankeyGraph, gap: float) -> list[Violation]:
    """Overlapping circular runs in one band are at least ``gap`` apart edge to edge."""
    out = []
    circular = [ln for ln in graph.links if ln.circular and ln.circular_path_data]
    for i, a in enumerate(circular):
        for b in circular[i + 1:]:
            if (a.band or Band.TOP) is not (b.band or Band.TOP):
                continue
            if graph.is_self_link(a) and graph.is_self_link(b) and a.source != b.source:
                # Loops on different nodes never share a run
                continue
            a_lo, a_hi = _column_range(graph, a)
            b_lo, b_hi = _column_range(graph, b)
            if a_hi < b_lo or b_hi < a_lo:
                continue
            distance = abs(
                a.circular_path_data.vertical_full_extent
                - b.circular_path_data.vertical_full_extent
            )
            clearance = distance - (a.width + b.width) / 2
            if clearance < gap - TOLERANCE:
                out.append(
                    Violation(
                        "band",
                        Severity.ERROR,
                        f"Circular links {a.index} and {b.index} only {clearance:.3f}px apart",
                    )
                )
    return out


def check_span_monotonicity(graph: SankeyGraph) -> list[Violation]:
    """Into one target and band, outer circular runs never have shorter spans."""
    out = []
    groups = defaultdict(list)
    for link in graph.links:
        if link.circular and link.circular_path_data and not graph.is_self_link(link):
            groups[(link.target, link.band or Band.TOP)].append(link)
    for (_, band), links in groups.items():
        sign = -1 if band is Band.TOP else 1
        # Innermost first
        ordered = sorted(links, key=lambda ln: sign * ln.circular_path_data.vertical_full_extent)
        for inner, outer in zip(ordered, ordered[1:]):
            if graph.span(outer) < graph.span(inner):
                out.append(
                    Violation(
                        "span",
                        Severity.ERROR,
                        f"Link {outer.index} (span {graph.span(outer)}) outside "
                        f"link {inner.index} (span {graph.span(inner)})",
                    )
                )
    return out


def check_path_endpoints(graph: SankeyGraph) -> list[Violation]:
    """Visible link paths start on the source's right edge and end on the target's left edge."""
    out = []
    for link in graph.links:
        if not link.path:
            out.append(Violation("path", Severity.ERROR, f"Link {link.index} has no path"))
            continue
        points = path_endpoints(link.path)
        (sx, sy), (tx, ty) = points[0], points[-1]
        source, target = graph.source(link), graph.target(link)
        if abs(sx - source.x1) > TOLERANCE or abs(sy - link.y0) > TOLERANCE:
            out.append(Violation("path", Severity.ERROR, f"Link {link.index} does not start at its port"))
        if abs(tx - target.x0) > TOLERANCE or abs(ty - link.y1) > TOLERANCE:
            out.append(Violation("path", Severity.ERROR, f"Link {link.index} does not end at its port"))
    return out


def validate_layout(graph: SankeyGraph, config: SankeyConfig | None = None) -> list[Violation]:
    """Run every check and return all violations."""
    config = config or SankeyConfig()
    return (
        check_coordinate_sanity(graph, config)
        + check_value_conservation(graph)
        + check_node_overlap(graph)
        + check_virtual_overlap(graph)
        + check_self_loop_extent(graph, config.base_radius, config.circular_gap)
        + check_port_bounds(graph)
        + check_band_separation(graph, config.circular_gap)
        + check_span_monotonicity(graph)
        + check_path_endpoints(graph)
    )
