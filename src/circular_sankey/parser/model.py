"""Data model for circular Sankey layouts.

Nodes and links live in one owned table each on :class:`SankeyGraph`.
Everything else refers to them by stable index: a link's ``source`` and
``target`` are node indices, and a node's ``source_links`` /
``target_links`` are link indices. Virtual nodes and links are appended
to the tail of the tables while a layout runs and split off into side
collections at the end, so real indices never move.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Hashable, Union


class MissingInputError(ValueError):
    """Node or link data was not supplied."""


class UnresolvedReferenceError(ValueError):
    """A link names a source/target identifier that no node carries."""

    def __init__(self, link_index: int, end: str, identifier: Any):
        self.link_index = link_index
        self.end = end
        self.identifier = identifier
        super().__init__(
            f"Link {link_index} references unknown {end} node {identifier!r}"
        )


class Band(str, Enum):
    """Routing band of a circular link."""

    TOP = "top"
    BOTTOM = "bottom"

    @property
    def opposite(self) -> Band:
        return Band.BOTTOM if self is Band.TOP else Band.TOP


class LinkKind(str, Enum):
    NORMAL = "normal"
    REPLACED = "replaced"
    VIRTUAL = "virtual"


class RouteMode(str, Enum):
    """How a replaced long-span link is drawn after layout."""

    DIRECT = "direct"
    CHAINED = "chained"
    CURVED = "curved"


# ---------------------------------------------------------------------------
# Path primitives
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MoveTo:
    x: float
    y: float

    def svg(self) -> str:
        return f"M{_num(self.x)} {_num(self.y)}"


@dataclass(frozen=True)
class LineTo:
    x: float
    y: float

    def svg(self) -> str:
        return f"L{_num(self.x)} {_num(self.y)}"


@dataclass(frozen=True)
class ArcTo:
    """Elliptical arc with independent x/y radii and a sweep direction."""

    rx: float
    ry: float
    sweep: int
    x: float
    y: float

    def svg(self) -> str:
        return (
            f"A{_num(self.rx)} {_num(self.ry)} 0 0 {self.sweep} "
            f"{_num(self.x)} {_num(self.y)}"
        )


@dataclass(frozen=True)
class CurveTo:
    """Cubic Bezier segment."""

    x1: float
    y1: float
    x2: float
    y2: float
    x: float
    y: float

    def svg(self) -> str:
        return (
            f"C{_num(self.x1)} {_num(self.y1)} {_num(self.x2)} {_num(self.y2)} "
            f"{_num(self.x)} {_num(self.y)}"
        )


PathCommand = Union[MoveTo, LineTo, ArcTo, CurveTo]


def _num(v: float) -> str:
    return f"{v:.3f}".rstrip("0").rstrip(".") if v == v else "nan"


def path_to_svg(path: list[PathCommand]) -> str:
    """Join path primitives into an SVG ``d`` attribute."""
    return " ".join(cmd.svg() for cmd in path)


def path_endpoints(path: list[PathCommand]) -> list[tuple[float, float]]:
    """Return the end point of every primitive, in order."""
    return [(cmd.x, cmd.y) for cmd in path]


# ---------------------------------------------------------------------------
# Graph elements
# ---------------------------------------------------------------------------


@dataclass
class CircularPathData:
    """Geometry of a circular link's routed path."""

    source_x: float = 0.0
    source_y: float = 0.0
    target_x: float = 0.0
    target_y: float = 0.0
    right_small_arc_radius: float = 0.0
    right_large_arc_radius: float = 0.0
    left_small_arc_radius: float = 0.0
    left_large_arc_radius: float = 0.0
    right_node_buffer: float = 0.0
    left_node_buffer: float = 0.0
    right_inner_extent: float = 0.0
    left_inner_extent: float = 0.0
    right_full_extent: float = 0.0
    left_full_extent: float = 0.0
    vertical_buffer: float = 0.0
    vertical_full_extent: float = 0.0
    vertical_right_inner_extent: float = 0.0
    vertical_left_inner_extent: float = 0.0
    base_y: float = 0.0


@dataclass
class Node:
    """A column-placed node. ``data`` is the caller's original record."""

    id: Hashable
    index: int
    data: Any = None
    value: float = 0.0
    fixed_value: float | None = None
    horizontal_sort: Any = None
    vertical_sort: float = 0.0
    column: int = 0
    depth: int = 0
    height: int = 0
    x0: float = 0.0
    x1: float = 0.0
    y0: float = 0.0
    y1: float = 0.0
    part_of_cycle: bool = False
    circular_band: Band | None = None
    virtual: bool = False
    replaced_link: int | None = None
    source_links: list[int] = field(default_factory=list)
    target_links: list[int] = field(default_factory=list)
    self_clearance_top: float = 0.0
    self_clearance_bottom: float = 0.0
    port_reserve: float = 0.0

    @property
    def center(self) -> float:
        return (self.y0 + self.y1) / 2


@dataclass
class Link:
    """A weighted link between two nodes (by index)."""

    index: int
    source: int
    target: int
    value: float
    data: Any = None
    type: Any = None
    width: float = 0.0
    circular: bool = False
    band: Band | None = None
    forced_band: Band | None = None
    circular_link_id: int | None = None
    kind: LinkKind = LinkKind.NORMAL
    parent_link: int | None = None
    y0: float = 0.0
    y1: float = 0.0
    x0: float = 0.0
    x1: float = 0.0
    path: list[PathCommand] = field(default_factory=list)
    circular_path_data: CircularPathData | None = None
    use_virtual: bool = False
    bypass: bool = False

    @property
    def d(self) -> str:
        return path_to_svg(self.path)


@dataclass
class SankeyGraph:
    """Owned node/link tables plus the drawable bounds of one layout run."""

    nodes: list[Node] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)
    x0: float = 0.0
    y0: float = 0.0
    x1: float = 0.0
    y1: float = 0.0
    ky: float = 0.0
    py: float = 0.0
    margin_top: float = 0.0
    margin_bottom: float = 0.0
    margin_left: float = 0.0
    margin_right: float = 0.0
    real_node_count: int = 0
    real_link_count: int = 0
    virtual_nodes: list[Node] = field(default_factory=list)
    virtual_links: list[Link] = field(default_factory=list)
    replaced_links: list[Link] = field(default_factory=list)
    link_types: dict[Any, dict[str, Any]] | None = None

    # --- lookups --------------------------------------------------------

    def node(self, index: int) -> Node:
        """Node by arena index, including split-off virtual nodes."""
        if index < len(self.nodes):
            return self.nodes[index]
        return self.virtual_nodes[index - len(self.nodes)]

    def link(self, index: int) -> Link:
        if index < len(self.links):
            return self.links[index]
        return self.virtual_links[index - len(self.links)]

    def source(self, link: Link) -> Node:
        return self.node(link.source)

    def target(self, link: Link) -> Node:
        return self.node(link.target)

    def node_by_id(self, node_id: Hashable) -> Node:
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise KeyError(node_id)

    def find_link(self, source_id: Hashable, target_id: Hashable) -> Link | None:
        for link in self.links:
            if (
                self.source(link).id == source_id
                and self.target(link).id == target_id
            ):
                return link
        return None

    def active_links(self) -> list[Link]:
        """Links that take part in layout (replaced links are out-of-band)."""
        return [ln for ln in self.links if ln.kind is not LinkKind.REPLACED]

    def is_self_link(self, link: Link) -> bool:
        return link.source == link.target

    def span(self, link: Link) -> int:
        return abs(self.target(link).column - self.source(link).column)

    def columns(self) -> list[list[Node]]:
        """Nodes grouped by column, ascending, in table order within a column."""
        by_col: dict[int, list[Node]] = {}
        for node in self.nodes:
            by_col.setdefault(node.column, []).append(node)
        return [by_col[c] for c in sorted(by_col)]

    def max_column(self) -> int:
        return max((n.column for n in self.nodes), default=0)

    # --- serialisation ----------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Plain-data view for external consumers (JSON friendly)."""
        return {
            "bounds": [self.x0, self.y0, self.x1, self.y1],
            "scale": self.ky,
            "nodes": [_node_dict(n) for n in self.nodes],
            "links": [self._link_dict(ln) for ln in self.links],
            "virtualNodes": [_node_dict(n) for n in self.virtual_nodes],
            "virtualLinks": [self._link_dict(ln) for ln in self.virtual_links],
            "replacedLinks": [ln.index for ln in self.replaced_links],
            "linkTypes": self.link_types,
        }

    def _link_dict(self, link: Link) -> dict[str, Any]:
        return {
            "index": link.index,
            "source": self.source(link).id,
            "target": self.target(link).id,
            "value": link.value,
            "type": link.type,
            "width": link.width,
            "circular": link.circular,
            "band": link.band.value if link.band else None,
            "kind": link.kind.value,
            "y0": link.y0,
            "y1": link.y1,
            "path": link.d,
            "commands": [_command_dict(cmd) for cmd in link.path],
        }


def _node_dict(node: Node) -> dict[str, Any]:
    return {
        "id": node.id,
        "index": node.index,
        "value": node.value,
        "column": node.column,
        "depth": node.depth,
        "height": node.height,
        "x0": node.x0,
        "x1": node.x1,
        "y0": node.y0,
        "y1": node.y1,
        "partOfCycle": node.part_of_cycle,
        "band": node.circular_band.value if node.circular_band else None,
        "virtual": node.virtual,
    }


def _command_dict(cmd: PathCommand) -> dict[str, Any]:
    return {"cmd": type(cmd).__name__, **asdict(cmd)}
