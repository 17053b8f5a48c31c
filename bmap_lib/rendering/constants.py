# Shared constants for the rendering package to avoid circular imports.

CELL_SIZE = 32
DEFAULT_GRID_CELLS = 16
DEFAULT_CANVAS_PX = 512

# Squiggly terrain outlines
TILE_OVERLAP = 2
SQUIGGLE_AMPLITUDE = 1.2
SQUIGGLE_STEPS = 6
SEED_COL_FACTOR = 137.5
SEED_ROW_FACTOR = 97.3
EDGE_PHASES = (0.0, 10.7, 20.3, 30.1)  # top, right, bottom, left

# Water blobs
WATER_CORNER_RADIUS = 8
WATER_EDGE_OVERLAP = 5

DEFAULT_TOKEN_SIZE = 40

DOCTYPE = (
    '<!DOCTYPE svg PUBLIC "-//W3C//DTD SVG 1.1//EN" '
    '"http://www.w3.org/Graphics/SVG/1.1/DTD/svg11.dtd">\n'
)
SVG_NS = "http://www.w3.org/2000/svg"
XLINK_NS = "http://www.w3.org/1999/xlink"
