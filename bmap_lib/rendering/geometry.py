import math
from typing import List, Tuple

from .constants import (
    CELL_SIZE,
    EDGE_PHASES,
    SEED_COL_FACTOR,
    SEED_ROW_FACTOR,
    SQUIGGLE_AMPLITUDE,
    SQUIGGLE_STEPS,
    TILE_OVERLAP,
)


def fmt(value: float) -> str:
    """Formats a coordinate compactly: integers without decimals, others to 2 places."""
    if float(value).is_integer():
        return str(int(value))
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def cell_seed(col: int, row: int) -> float:
    """Deterministic per-cell phase used by the outline jitter."""
    return col * SEED_COL_FACTOR + row * SEED_ROW_FACTOR


def squiggly_points(col: int, row: int, size: int = CELL_SIZE) -> List[Tuple[float, float]]:
    """
    Returns the jittered outline of a cell, clockwise from the top-left corner.

    The cell is grown by TILE_OVERLAP on every side so neighbouring textured
    cells overlap, then every edge is walked in SQUIGGLE_STEPS steps and each
    point is pushed along the edge normal by a sine of the cell seed.
    """
    seed = cell_seed(col, row)
    x0 = col * size - TILE_OVERLAP
    y0 = row * size - TILE_OVERLAP
    extent = size + TILE_OVERLAP * 2
    top, right, bottom, left = EDGE_PHASES
    steps = SQUIGGLE_STEPS

    def wave(phase: float, t: float) -> float:
        return SQUIGGLE_AMPLITUDE * math.sin(seed + phase + t * math.pi * 2)

    points: List[Tuple[float, float]] = [(x0, y0)]
    for i in range(1, steps + 1):
        t = i / steps
        points.append((x0 + t * extent, y0 + wave(top, t)))
    for i in range(1, steps + 1):
        t = i / steps
        points.append((x0 + extent + wave(right, t), y0 + t * extent))
    for i in range(steps - 1, -1, -1):
        t = i / steps
        points.append((x0 + t * extent, y0 + extent + wave(bottom, t)))
    for i in range(steps - 1, -1, -1):
        t = i / steps
        points.append((x0 + wave(left, t), y0 + t * extent))
    return points


def squiggly_path_data(col: int, row: int, size: int = CELL_SIZE) -> str:
    """SVG path data for the jittered outline of one cell."""
    points = squiggly_points(col, row, size)
    head = f"M {fmt(points[0][0])},{fmt(points[0][1])}"
    rest = " ".join(f"L {fmt(x)},{fmt(y)}" for x, y in points[1:])
    return f"{head} {rest} Z"


def rounded_rect_path(
    x: int,
    y: int,
    width: int,
    height: int,
    r_top_left: int = 0,
    r_top_right: int = 0,
    r_bottom_right: int = 0,
    r_bottom_left: int = 0,
) -> str:
    """
    Path data for a rectangle with independently rounded corners, drawn
    clockwise from the top edge. Each rounded corner is a quarter-circle arc.
    """
    if not (r_top_left or r_top_right or r_bottom_right or r_bottom_left):
        return f"M {x},{y} L {x + width},{y} L {x + width},{y + height} L {x},{y + height} Z"

    parts = []
    if r_top_left > 0:
        parts.append(f"M {x},{y + r_top_left}")
        parts.append(f"A {r_top_left},{r_top_left} 0 0 1 {x + r_top_left},{y}")
    else:
        parts.append(f"M {x},{y}")

    if r_top_right > 0:
        parts.append(f"L {x + width - r_top_right},{y}")
        parts.append(f"A {r_top_right},{r_top_right} 0 0 1 {x + width},{y + r_top_right}")
    else:
        parts.append(f"L {x + width},{y}")

    if r_bottom_right > 0:
        parts.append(f"L {x + width},{y + height - r_bottom_right}")
        parts.append(
            f"A {r_bottom_right},{r_bottom_right} 0 0 1 {x + width - r_bottom_right},{y + height}"
        )
    else:
        parts.append(f"L {x + width},{y + height}")

    if r_bottom_left > 0:
        parts.append(f"L {x + r_bottom_left},{y + height}")
        parts.append(f"A {r_bottom_left},{r_bottom_left} 0 0 1 {x},{y + height - r_bottom_left}")
    else:
        parts.append(f"L {x},{y + height}")

    parts.append("Z")
    return " ".join(parts)
