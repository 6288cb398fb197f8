"""Layout constants for the circular Sankey pipeline.

Centralises every tunable default so the rest of the layout package reads
them from one place. ``SankeyConfig`` uses these as its field defaults.
"""

# --- Canvas ---
WIDTH: float = 1000.0
HEIGHT: float = 500.0
PADDING: float = 20.0

# --- Columns ---
ALIGN: str = "left"
ALIGN_MODES: tuple[str, ...] = ("left", "right", "center", "justify")

# --- Nodes ---
NODE_WIDTH: float = 24.0
NODE_PADDING: float = 25.0
NODE_MIN_PADDING: float = 25.0
ITERATIONS: int = 32
SCALE: float = 0.2
CYCLE_INSET: float = 0.0
CIRCULAR_RELAXATION_WEIGHT: float = 0.0

# Gaps between nodes of an uncommitted column never grow past this
# multiple of the configured padding.
MAX_GAP_FACTOR: float = 2.0

# Relaxation decay per iteration; cycle nodes move at half the rate.
RELAX_DECAY: float = 0.99
CYCLE_RELAX_FACTOR: float = 0.5

# --- Circular links ---
CIRCULAR_GAP: float = 5.0
BASE_RADIUS: float = 10.0
VERTICAL_MARGIN: float = 25.0

# Gap between stacked circular ports on one node side (capped by CIRCULAR_GAP).
MAX_CIRCULAR_PORT_GAP: float = 2.0

# Horizontal clearance between a node edge and a circular leg's first arc.
NODE_BUFFER: float = 5.0

# Backward links only follow geometry when the vertical separation
# exceeds this fraction of the drawable height.
BACKLINK_GEOMETRY_THRESHOLD: float = 0.3

# Target nodes receiving at least this many top-band links (and none on
# the bottom) get one of them moved to the bottom band.
CONGESTION_THRESHOLD: int = 8

# --- Virtual routes ---
USE_VIRTUAL_ROUTES: bool = True
ROUTE_MODE: str = "curved"
VIRTUAL_NODE_PREFIX: str = "__virtual_"

# --- Iteration policy ---
SORT_ITERATIONS: int = 6
POST_SORT_ITERATIONS: int = 2
BAND_PASSES: int = 2

# --- Record keys ---
ID_KEY: str = "name"
TYPE_KEY: str = "type"
VALUE_KEY: str = "value"
HORIZONTAL_SORT_KEY: str = "horizontalSort"
VERTICAL_SORT_KEY: str = "verticalSort"

# --- Numerical tolerance ---
EPSILON: float = 1e-9
