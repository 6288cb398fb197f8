"""circular-sankey: Sankey diagram layout with circular (cycle-closing) links."""

from circular_sankey.layout.binding import build_graph
from circular_sankey.layout.config import SankeyConfig
from circular_sankey.layout.engine import compute_layout
from circular_sankey.parser.model import (
    Band,
    MissingInputError,
    RouteMode,
    SankeyGraph,
    UnresolvedReferenceError,
)

__version__ = "0.1.0"

__all__ = [
    "Band",
    "MissingInputError",
    "RouteMode",
    "SankeyConfig",
    "SankeyGraph",
    "UnresolvedReferenceError",
    "build_graph",
    "compute_layout",
]
