"""Drawing defaults for the SVG renderer."""

NODE_COLOR = "#4d4d4d"
LINK_COLOR = "#a6a6a6"
CIRCULAR_LINK_COLOR = "#e8845c"
LINK_OPACITY = 0.55
BACKGROUND_COLOR = "none"

FONT_FAMILY = "Helvetica, Arial, sans-serif"
FONT_SIZE = 11
LABEL_COLOR = "#333333"
LABEL_GAP = 6

LEGEND_SWATCH = 12
LEGEND_ROW_HEIGHT = 18
LEGEND_INSET = 10
