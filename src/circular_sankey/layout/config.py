"""Layout configuration and the per-run layout context."""

from __future__ import annotations

__all__ = ["LayoutContext", "SankeyConfig"]

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Callable, Hashable

from circular_sankey.layout.constants import (
    ALIGN,
    ALIGN_MODES,
    BAND_PASSES,
    BASE_RADIUS,
    CIRCULAR_GAP,
    CIRCULAR_RELAXATION_WEIGHT,
    CYCLE_INSET,
    HEIGHT,
    ITERATIONS,
    MAX_CIRCULAR_PORT_GAP,
    NODE_MIN_PADDING,
    NODE_PADDING,
    NODE_WIDTH,
    PADDING,
    POST_SORT_ITERATIONS,
    ROUTE_MODE,
    SCALE,
    SORT_ITERATIONS,
    USE_VIRTUAL_ROUTES,
    VERTICAL_MARGIN,
    WIDTH,
)
from circular_sankey.parser.model import RouteMode, SankeyGraph
from circular_sankey.parser.records import default_id, default_type


@dataclass(frozen=True)
class SankeyConfig:
    """Every knob of one layout run.

    Instances are immutable; use :meth:`with_overrides` to derive a
    variant. Accessors receive the caller's original record.
    """

    width: float = WIDTH
    height: float = HEIGHT
    padding: float = PADDING
    align: str = ALIGN
    iterations: int = ITERATIONS
    scale: float = SCALE
    node_width: float = NODE_WIDTH
    node_padding: float = NODE_PADDING
    node_min_padding: float = NODE_MIN_PADDING
    horizontal_sort: bool = False
    vertical_sort: bool = False
    set_positions: bool = False
    circular_relaxation_weight: float = CIRCULAR_RELAXATION_WEIGHT
    cycle_inset: float = CYCLE_INSET
    circular_gap: float = CIRCULAR_GAP
    base_radius: float = BASE_RADIUS
    vertical_margin: float = VERTICAL_MARGIN
    use_virtual_routes: bool = USE_VIRTUAL_ROUTES
    route_mode: str = ROUTE_MODE
    link_types: dict[Any, dict[str, Any]] | None = None
    link_type_order: tuple[Any, ...] | None = None
    sort_iterations: int = SORT_ITERATIONS
    post_sort_iterations: int = POST_SORT_ITERATIONS
    band_passes: int = BAND_PASSES
    id_accessor: Callable[[Any], Hashable] = field(default=default_id)
    type_accessor: Callable[[Any], Any] = field(default=default_type)

    def __post_init__(self) -> None:
        if self.align not in ALIGN_MODES:
            raise ValueError(
                f"Unknown align {self.align!r}; expected one of {', '.join(ALIGN_MODES)}"
            )
        modes = [m.value for m in RouteMode]
        if self.route_mode not in modes:
            raise ValueError(
                f"Unknown route_mode {self.route_mode!r}; expected one of {', '.join(modes)}"
            )
        if self.link_type_order is not None and not isinstance(
            self.link_type_order, tuple
        ):
            object.__setattr__(self, "link_type_order", tuple(self.link_type_order))

    def with_overrides(self, **overrides: Any) -> SankeyConfig:
        """Return a copy with ``overrides`` applied.

        Raises:
            TypeError: if a key is not a configuration field.
        """
        names = {f.name for f in dataclasses.fields(self)}
        unknown = sorted(set(overrides) - names)
        if unknown:
            raise TypeError(f"Unknown layout option(s): {', '.join(unknown)}")
        return dataclasses.replace(self, **overrides)

    @property
    def route(self) -> RouteMode:
        return RouteMode(self.route_mode)

    @property
    def circular_port_gap(self) -> float:
        """Gap between stacked circular ports on one side of a node."""
        return max(0.0, min(MAX_CIRCULAR_PORT_GAP, self.circular_gap))


@dataclass
class LayoutContext:
    """Mutable state threaded through the stage functions of one run.

    ``geometry`` is False until the Breadth Placer has run once; stages
    that refine decisions from node positions skip that work before then.
    """

    graph: SankeyGraph
    config: SankeyConfig
    geometry: bool = False
    band_pass: int = 0
