"""Graph binding: turn caller records into an indexed SankeyGraph.

Each link endpoint is resolved against a node-by-identifier index. An
endpoint may also be one of the node records themselves, in which case it
binds by identity. Anything else is an unresolved reference and fails the
run immediately.
"""

from __future__ import annotations

__all__ = ["bind_graph", "build_graph"]

from typing import Any, Hashable, Iterable

from circular_sankey.layout.config import LayoutContext, SankeyConfig
from circular_sankey.layout.constants import (
    HORIZONTAL_SORT_KEY,
    VALUE_KEY,
    VERTICAL_SORT_KEY,
)
from circular_sankey.parser.model import (
    Link,
    MissingInputError,
    Node,
    SankeyGraph,
    UnresolvedReferenceError,
)
from circular_sankey.parser.records import record_get


def build_graph(
    nodes: Iterable[Any] | None,
    links: Iterable[Any] | None,
    config: SankeyConfig | None = None,
) -> SankeyGraph:
    """Build a fresh graph from node and link records.

    Args:
        nodes: Node records; identifiers come from ``config.id_accessor``.
        links: Link records with ``source``, ``target`` and ``value``.
        config: Layout configuration (defaults if omitted).

    Returns:
        A bound graph with incident-link lists populated.

    Raises:
        MissingInputError: if ``nodes`` or ``links`` is None.
        UnresolvedReferenceError: if a link endpoint names no node.
    """
    if nodes is None:
        raise MissingInputError("Please supply node data")
    if links is None:
        raise MissingInputError("Please supply link data")
    config = config or SankeyConfig()

    graph = SankeyGraph()
    by_id: dict[Hashable, int] = {}
    by_record: dict[int, int] = {}

    for i, record in enumerate(nodes):
        node_id = config.id_accessor(record)
        fixed = record_get(record, VALUE_KEY)
        node = Node(
            id=node_id,
            index=i,
            data=record,
            fixed_value=float(fixed) if fixed is not None else None,
            horizontal_sort=record_get(record, HORIZONTAL_SORT_KEY),
            vertical_sort=record_get(record, VERTICAL_SORT_KEY) or 0.0,
        )
        graph.nodes.append(node)
        # First record wins for duplicate identifiers
        by_id.setdefault(node_id, i)
        by_record[id(record)] = i

    for i, record in enumerate(links):
        source = _resolve(record_get(record, "source"), i, "source", by_id, by_record)
        target = _resolve(record_get(record, "target"), i, "target", by_id, by_record)
        value = record_get(record, VALUE_KEY)
        link = Link(
            index=i,
            source=source,
            target=target,
            value=float(value) if value is not None else 0.0,
            data=record,
            type=config.type_accessor(record),
        )
        graph.links.append(link)
        graph.nodes[source].source_links.append(i)
        graph.nodes[target].target_links.append(i)

    graph.real_node_count = len(graph.nodes)
    graph.real_link_count = len(graph.links)
    graph.link_types = dict(config.link_types) if config.link_types else None
    return graph


def _resolve(
    endpoint: Any,
    link_index: int,
    end: str,
    by_id: dict[Hashable, int],
    by_record: dict[int, int],
) -> int:
    if id(endpoint) in by_record and not isinstance(endpoint, (str, int, float)):
        return by_record[id(endpoint)]
    try:
        return by_id[endpoint]
    except (KeyError, TypeError):
        raise UnresolvedReferenceError(link_index, end, endpoint) from None


def bind_graph(ctx: LayoutContext) -> None:
    """Reset the drawable bounds of a bound graph from the canvas config."""
    graph, config = ctx.graph, ctx.config
    graph.x0 = config.padding
    graph.y0 = config.padding
    graph.x1 = config.width - config.padding
    graph.y1 = config.height - config.padding
    graph.py = 0.0
