"""SVG rendering of a laid-out Sankey graph using drawsvg.

Only draws what the layout computed: node rectangles, link strokes whose
width is the link width, optional node labels and a link-type legend.
"""

from __future__ import annotations

__all__ = ["link_color", "render_svg"]

import drawsvg as draw

from circular_sankey.layout.config import SankeyConfig
from circular_sankey.parser.model import (
    ArcTo,
    CurveTo,
    LineTo,
    Link,
    LinkKind,
    MoveTo,
    PathCommand,
    SankeyGraph,
)
from circular_sankey.render.constants import (
    BACKGROUND_COLOR,
    CIRCULAR_LINK_COLOR,
    FONT_FAMILY,
    FONT_SIZE,
    LABEL_COLOR,
    LABEL_GAP,
    LEGEND_INSET,
    LEGEND_ROW_HEIGHT,
    LEGEND_SWATCH,
    LINK_COLOR,
    LINK_OPACITY,
    NODE_COLOR,
)


def link_color(graph: SankeyGraph, link: Link) -> str:
    """Stroke colour from the link-type table, else a circular/ordinary default."""
    if graph.link_types and link.type in graph.link_types:
        color = graph.link_types[link.type].get("color")
        if color:
            return color
    return CIRCULAR_LINK_COLOR if link.circular else LINK_COLOR


def _to_drawsvg(path: list[PathCommand], **kwargs) -> draw.Path:
    p = draw.Path(**kwargs)
    for cmd in path:
        if isinstance(cmd, MoveTo):
            p.M(cmd.x, cmd.y)
        elif isinstance(cmd, LineTo):
            p.L(cmd.x, cmd.y)
        elif isinstance(cmd, ArcTo):
            p.A(cmd.rx, cmd.ry, 0, 0, cmd.sweep, cmd.x, cmd.y)
        elif isinstance(cmd, CurveTo):
            p.C(cmd.x1, cmd.y1, cmd.x2, cmd.y2, cmd.x, cmd.y)
    return p


def render_svg(
    graph: SankeyGraph,
    config: SankeyConfig | None = None,
    *,
    labels: bool = True,
    legend: bool = True,
) -> str:
    """Render ``graph`` to an SVG document string.

    Args:
        graph: A graph returned by ``compute_layout``.
        config: Canvas size source; defaults to ``SankeyConfig()``.
        labels: Draw each node's identifier beside it.
        legend: Draw the link-type legend when the graph carries one.
    """
    config = config or SankeyConfig()
    d = draw.Drawing(config.width, config.height)
    if BACKGROUND_COLOR != "none":
        d.append(draw.Rectangle(0, 0, config.width, config.height, fill=BACKGROUND_COLOR))

    links = draw.Group(id="links", fill="none", stroke_opacity=LINK_OPACITY)
    for link in graph.links:
        if link.kind is LinkKind.VIRTUAL or not link.path or link.width <= 0:
            continue
        links.append(
            _to_drawsvg(
                link.path,
                stroke=link_color(graph, link),
                stroke_width=link.width,
                class_="circular" if link.circular else "link",
            )
        )
    d.append(links)

    nodes = draw.Group(id="nodes")
    for node in graph.nodes:
        nodes.append(
            draw.Rectangle(
                node.x0,
                node.y0,
                node.x1 - node.x0,
                max(node.y1 - node.y0, 0.0),
                fill=NODE_COLOR,
            )
        )
        if labels:
            # Labels sit right of the node, left of it in the last column
            last = node.x1 >= graph.x1
            nodes.append(
                draw.Text(
                    str(node.id),
                    FONT_SIZE,
                    node.x0 - LABEL_GAP if last else node.x1 + LABEL_GAP,
                    node.center,
                    fill=LABEL_COLOR,
                    font_family=FONT_FAMILY,
                    text_anchor="end" if last else "start",
                    dominant_baseline="middle",
                )
            )
    d.append(nodes)

    if legend and graph.link_types:
        _render_legend(d, graph)

    return d.as_svg()


def _render_legend(d: draw.Drawing, graph: SankeyGraph) -> None:
    group = draw.Group(id="legend")
    y = LEGEND_INSET
    for key, entry in graph.link_types.items():
        group.append(
            draw.Rectangle(
                LEGEND_INSET,
                y,
                LEGEND_SWATCH,
                LEGEND_SWATCH,
                fill=entry.get("color", LINK_COLOR),
            )
        )
        group.append(
            draw.Text(
                str(entry.get("name", key)),
                FONT_SIZE,
                LEGEND_INSET + LEGEND_SWATCH + LABEL_GAP,
                y + LEGEND_SWATCH / 2,
                fill=LABEL_COLOR,
                font_family=FONT_FAMILY,
                dominant_baseline="middle",
            )
        )
        y += LEGEND_ROW_HEIGHT
    d.append(group)
