"""Tests for circular link geometry, ordinary link curves and bypasses."""

from __future__ import annotations

import pytest

from circular_sankey.layout.circular import (
    build_circular_paths,
    build_link_paths,
    link_curve,
)
from circular_sankey.layout.config import LayoutContext, SankeyConfig
from circular_sankey.parser.model import ArcTo, Band, LineTo, MoveTo, path_endpoints

from conftest import layout, make_links, make_nodes, prepare_context

from layout_validator import (
    Severity,
    check_band_separation,
    check_self_loop_extent,
    check_span_monotonicity,
)


def _rebuild_in_band(graph, band: Band) -> SankeyConfig:
    """Force every circular link into ``band`` and rebuild the geometry."""
    config = SankeyConfig()
    for link in graph.links:
        if link.circular:
            link.band = band
    build_circular_paths(LayoutContext(graph=graph, config=config, geometry=True))
    return config


class TestStacking:
    @pytest.mark.parametrize("band", [Band.TOP, Band.BOTTOM])
    def test_longer_span_runs_outside_with_gap(self, two_backlinks, band):
        graph = layout(two_backlinks)
        config = _rebuild_in_band(graph, band)
        short = graph.find_link("B", "T").circular_path_data
        long = graph.find_link("D", "T").circular_path_data
        w_short = graph.find_link("B", "T").width
        w_long = graph.find_link("D", "T").width

        separation = (w_short + w_long) / 2 + config.circular_gap
        if band is Band.TOP:
            assert long.vertical_full_extent <= short.vertical_full_extent - separation + 1e-9
        else:
            assert long.vertical_full_extent >= short.vertical_full_extent + separation - 1e-9

    def test_final_layout_separates_bands(self, two_backlinks):
        graph = layout(two_backlinks)
        violations = check_band_separation(graph, SankeyConfig().circular_gap)
        violations += check_span_monotonicity(graph)
        errors = [v for v in violations if v.severity == Severity.ERROR]
        assert not errors, "\n".join(v.message for v in errors)


class TestPathShape:
    def test_circular_path_primitives(self, triangle_graph):
        link = triangle_graph.find_link("C", "A")
        assert len(link.path) == 10
        assert isinstance(link.path[0], MoveTo)
        assert isinstance(link.path[-1], LineTo)
        arcs = [cmd for cmd in link.path if isinstance(cmd, ArcTo)]
        assert len(arcs) == 4
        expected = 0 if link.band is Band.TOP else 1
        assert {arc.sweep for arc in arcs} == {expected}

    def test_circular_path_runs_port_to_port(self, triangle_graph):
        link = triangle_graph.find_link("C", "A")
        points = path_endpoints(link.path)
        assert points[0] == pytest.approx((triangle_graph.node_by_id("C").x1, link.y0))
        assert points[-1] == pytest.approx((triangle_graph.node_by_id("A").x0, link.y1))

    def test_vertical_run_leaves_room_for_both_arcs(self, triangle_graph):
        link = triangle_graph.find_link("C", "A")
        d = link.circular_path_data
        right = d.right_small_arc_radius + d.right_large_arc_radius
        left = d.left_small_arc_radius + d.left_large_arc_radius
        if link.band is Band.TOP:
            assert d.vertical_full_extent <= link.y0 - right + 1e-9
            assert d.vertical_full_extent <= link.y1 - left + 1e-9
        else:
            assert d.vertical_full_extent >= link.y0 + right - 1e-9
            assert d.vertical_full_extent >= link.y1 + left - 1e-9

    def test_svg_string(self, triangle_graph):
        d = triangle_graph.find_link("C", "A").d
        assert d.startswith("M")
        assert d.count("A") == 4


class TestSelfLoop:
    @pytest.mark.parametrize("size", [(1000, 500), (2400, 1600)])
    def test_loop_height_bounded_by_width(self, self_loop, size):
        width, height = size
        graph = layout(self_loop, width=width, height=height)
        link = graph.links[0]
        node = graph.nodes[0]
        d = link.circular_path_data
        config = SankeyConfig()
        if link.band is Band.TOP:
            extent = node.y0 - (d.vertical_full_extent - link.width / 2)
        else:
            extent = (d.vertical_full_extent + link.width / 2) - node.y1
        assert 0 < extent <= 3 * link.width + 2 * config.base_radius

    def test_loops_in_one_column_stay_on_their_own_node(self):
        graph = layout(
            (make_nodes("A", "B", "C"), make_links(("A", "A", 5), ("B", "B", 5), ("C", "C", 5)))
        )
        config = SankeyConfig()
        assert len({n.column for n in graph.nodes}) == 1
        for link in graph.links:
            node = graph.source(link)
            d = link.circular_path_data
            if link.band is Band.TOP:
                far = d.vertical_full_extent - link.width / 2
                reach, sweep = node.y0 - far, (far, node.y0)
            else:
                far = d.vertical_full_extent + link.width / 2
                reach, sweep = far - node.y1, (node.y1, far)
            assert 0 < reach <= 3 * link.width + 2 * config.base_radius
            for other in graph.nodes:
                if other is not node:
                    assert other.y1 <= sweep[0] or other.y0 >= sweep[1]
        errors = [
            v
            for v in check_self_loop_extent(graph, config.base_radius, config.circular_gap)
            if v.severity == Severity.ERROR
        ]
        assert not errors

    def test_loops_on_one_node_stack_outward(self):
        graph = layout((make_nodes("A"), make_links(("A", "A", 5), ("A", "A", 5))))
        # Equal loops stack in table order
        inner, outer = graph.links
        _rebuild_in_band(graph, Band.TOP)
        d_inner, d_outer = inner.circular_path_data, outer.circular_path_data
        assert d_outer.vertical_full_extent < d_inner.vertical_full_extent
        assert not check_band_separation(graph, SankeyConfig().circular_gap)

    def test_self_loop_uses_single_radius(self, self_loop):
        graph = layout(self_loop)
        d = graph.links[0].circular_path_data
        assert d.right_small_arc_radius == d.right_large_arc_radius
        assert d.left_small_arc_radius == d.left_large_arc_radius


def test_link_curve_is_flat_at_both_ends():
    move, curve = link_curve(0, 10, 100, 50)
    assert (move.x, move.y) == (0, 10)
    assert (curve.x1, curve.y1) == (50, 10)
    assert (curve.x2, curve.y2) == (50, 50)
    assert (curve.x, curve.y) == (100, 50)


class TestBypass:
    def _context(self):
        records = (
            make_nodes("A", "B", "C"),
            make_links(("A", "B"), ("B", "C"), ("A", "C")),
        )
        ctx = prepare_context(records, use_virtual_routes=False)
        for node, x in zip(ctx.graph.nodes, (0, 100, 200)):
            node.y0, node.y1 = 100.0, 140.0
            node.x0, node.x1 = x, x + 10
        for link in ctx.graph.links:
            link.width, link.y0, link.y1 = 4.0, 120.0, 120.0
        return ctx

    def test_link_through_node_gets_bypass(self):
        ctx = self._context()
        build_link_paths(ctx)
        link = ctx.graph.find_link("A", "C")
        assert link.bypass
        runs = [cmd for cmd in link.path if isinstance(cmd, LineTo)]
        assert len(runs) == 1
        # Passes above B: 100 - half width - gap
        assert runs[0].y == pytest.approx(93)
        points = path_endpoints(link.path)
        assert points[0] == (10, 120.0)
        assert points[-1] == (200, 120.0)

    def test_unit_span_links_never_bypass(self):
        ctx = self._context()
        build_link_paths(ctx)
        assert not ctx.graph.find_link("A", "B").bypass
        assert not ctx.graph.find_link("B", "C").bypass
