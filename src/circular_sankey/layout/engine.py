"""Layout coordinator: runs the stage functions over one layout context.

Band selection, breadth placement, port ordering and circular path
geometry depend on each other, so that group of stages is re-run a fixed
number of times (``band_passes``) instead of being iterated to a fixed
point. Every stage is a plain function taking the shared
:class:`LayoutContext`; the order of the lists below is the pipeline.
"""

from __future__ import annotations

__all__ = ["compute_layout", "layout_graph", "run_stages"]

from typing import Any, Callable, Iterable, Sequence

from circular_sankey.layout.bands import (
    compute_node_values,
    select_bands,
    sync_bidirectional,
)
from circular_sankey.layout.binding import bind_graph, build_graph
from circular_sankey.layout.breadths import place_breadths
from circular_sankey.layout.circular import build_circular_paths
from circular_sankey.layout.columns import assign_columns
from circular_sankey.layout.config import LayoutContext, SankeyConfig
from circular_sankey.layout.cycles import classify_cycles
from circular_sankey.layout.extents import adjust_extents, scale_extents
from circular_sankey.layout.ports import order_ports
from circular_sankey.layout.virtual import (
    excise_virtual_chains,
    insert_virtual_nodes,
    straighten_virtual_nodes,
)
from circular_sankey.parser.model import SankeyGraph

Stage = Callable[[LayoutContext], None]

# Topology and scale: runs once, before any node has a position.
PREPARE_STAGES: tuple[Stage, ...] = (
    bind_graph,
    classify_cycles,
    assign_columns,
    select_bands,
    sync_bidirectional,
    compute_node_values,
    insert_virtual_nodes,
    scale_extents,
    place_breadths,
)

# Mutually dependent decisions, re-run ``band_passes`` times.
BAND_PASS_STAGES: tuple[Stage, ...] = (
    select_bands,
    sync_bidirectional,
    compute_node_values,
    place_breadths,
    order_ports,
    straighten_virtual_nodes,
    build_circular_paths,
)

# Geometry after the final port refinement.
FINISH_STAGES: tuple[Stage, ...] = (
    straighten_virtual_nodes,
    build_circular_paths,
    excise_virtual_chains,
)


def run_stages(ctx: LayoutContext, stages: Iterable[Stage]) -> None:
    for stage in stages:
        stage(ctx)


def layout_graph(graph: SankeyGraph, config: SankeyConfig) -> SankeyGraph:
    """Run the full pipeline over an already bound graph."""
    ctx = LayoutContext(graph=graph, config=config)
    run_stages(ctx, PREPARE_STAGES)

    for i in range(max(0, config.band_passes)):
        ctx.band_pass = i
        run_stages(ctx, BAND_PASS_STAGES)

    sort_passes = max(0, config.sort_iterations)
    if config.band_passes <= 0:
        # Ports have not been ordered by any band pass yet
        sort_passes = max(1, sort_passes)
    for _ in range(sort_passes):
        order_ports(ctx)
    adjust_extents(ctx)
    for _ in range(max(0, config.post_sort_iterations)):
        order_ports(ctx)

    run_stages(ctx, FINISH_STAGES)
    return graph


def compute_layout(
    nodes: Sequence[Any] | None,
    links: Sequence[Any] | None,
    config: SankeyConfig | None = None,
    **overrides: Any,
) -> SankeyGraph:
    """Lay out a circular Sankey diagram.

    Args:
        nodes: Node records (mappings or objects); see ``SankeyConfig.id_accessor``.
        links: Link records carrying ``source``, ``target``, ``value`` and
            optionally ``type``.
        config: Base configuration; defaults when omitted.
        **overrides: Individual ``SankeyConfig`` fields to override.

    Returns:
        A new graph with positions, widths, ports and paths computed.
        Each call is independent: identical input gives identical output.
    """
    config = config or SankeyConfig()
    if overrides:
        config = config.with_overrides(**overrides)
    graph = build_graph(nodes, links, config)
    return layout_graph(graph, config)
