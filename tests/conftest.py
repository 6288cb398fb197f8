"""Shared test fixtures and helpers for the circular-sankey test suite."""

from __future__ import annotations

import pytest

from circular_sankey.layout.binding import bind_graph, build_graph
from circular_sankey.layout.columns import assign_columns
from circular_sankey.layout.config import LayoutContext, SankeyConfig
from circular_sankey.layout.cycles import classify_cycles
from circular_sankey.layout.engine import compute_layout
from circular_sankey.parser.model import SankeyGraph

# --- Record builders ---


def make_nodes(*names: str) -> list[dict]:
    return [{"name": name} for name in names]


def make_links(*edges) -> list[dict]:
    """Link records from ``(source, target)`` or ``(source, target, value)`` tuples."""
    links = []
    for edge in edges:
        source, target = edge[0], edge[1]
        value = edge[2] if len(edge) > 2 else 1
        links.append({"source": source, "target": target, "value": value})
    return links


# --- Graph data constants ---

TRIANGLE = (
    make_nodes("A", "B", "C"),
    make_links(("A", "B"), ("B", "C"), ("C", "A")),
)

SELF_LOOP = (
    make_nodes("A"),
    make_links(("A", "A", 5)),
)

# T -> B -> C -> D with backlinks B -> T (span 1) and D -> T (span 3)
TWO_BACKLINKS = (
    make_nodes("T", "B", "C", "D"),
    make_links(
        ("T", "B", 4),
        ("B", "C", 4),
        ("C", "D", 4),
        ("B", "T", 1),
        ("D", "T", 2),
    ),
)

# A -> D skips two columns
LONG_SPAN = (
    make_nodes("A", "B", "C", "D"),
    make_links(
        ("A", "B", 3),
        ("B", "C", 3),
        ("C", "D", 3),
        ("A", "D", 2),
    ),
)


# --- Layout helpers ---


def layout(records: tuple[list, list], **kwargs) -> SankeyGraph:
    """Run the full pipeline on ``(nodes, links)`` with config overrides."""
    nodes, links = records
    return compute_layout(nodes, links, **kwargs)


def make_context(records: tuple[list, list], **overrides) -> LayoutContext:
    """Bound graph and context, before any classification."""
    nodes, links = records
    config = SankeyConfig().with_overrides(**overrides)
    ctx = LayoutContext(graph=build_graph(nodes, links, config), config=config)
    bind_graph(ctx)
    return ctx


def prepare_context(records: tuple[list, list], **overrides) -> LayoutContext:
    """Context with circular links classified and columns assigned."""
    ctx = make_context(records, **overrides)
    classify_cycles(ctx)
    assign_columns(ctx)
    return ctx


# --- Pytest fixtures ---


@pytest.fixture
def triangle() -> tuple[list, list]:
    """A 3-node cycle: A -> B -> C -> A."""
    return TRIANGLE


@pytest.fixture
def self_loop() -> tuple[list, list]:
    """A single node with a value-5 self-loop."""
    return SELF_LOOP


@pytest.fixture
def two_backlinks() -> tuple[list, list]:
    """Two circular links into T with spans 1 and 3."""
    return TWO_BACKLINKS


@pytest.fixture
def long_span() -> tuple[list, list]:
    """A chain plus one link spanning three columns."""
    return LONG_SPAN


@pytest.fixture
def triangle_graph() -> SankeyGraph:
    return layout(TRIANGLE)
