# --- bmap_lib/rendering/water.py ---
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

from bmap_lib import schema
from bmap_lib.assets import TextureRegistry
from .constants import CELL_SIZE, WATER_CORNER_RADIUS, WATER_EDGE_OVERLAP
from .geometry import rounded_rect_path

log = logging.getLogger("bmap.water")

WATER_MASK_ID = "waterMask"
WATER_FILTER_ID = "waterFilter"
EDGE_WIGGLE_FILTER_ID = "waterEdgeWiggle"

_NEIGHBOURS = ((-1, 0), (0, 1), (1, 0), (0, -1))


@dataclass(frozen=True)
class EdgeFlags:
    """Which map borders are touched by water."""

    top: bool = False
    bottom: bool = False
    left: bool = False
    right: bool = False


@dataclass
class WaterLayer:
    defs: List[str] = field(default_factory=list)
    elements: List[str] = field(default_factory=list)


def edge_wiggle_filter() -> str:
    """Animated turbulence displacement used to make the water mask edges move."""
    return (
        f"<filter id='{EDGE_WIGGLE_FILTER_ID}' x='-50%' y='-50%' width='200%' height='200%' "
        "filterUnits='userSpaceOnUse'>"
        "<feTurbulence type='fractalNoise' baseFrequency='0.03 0.05' numOctaves='2' seed='5' "
        "result='edgeNoise1'>"
        "<animate attributeName='baseFrequency' values='0.03 0.05;0.05 0.03;0.03 0.05' "
        "dur='16s' repeatCount='indefinite'/>"
        "</feTurbulence>"
        "<feTurbulence type='fractalNoise' baseFrequency='0.02 0.04' numOctaves='2' seed='12' "
        "result='edgeNoise2'>"
        "<animate attributeName='baseFrequency' values='0.02 0.04;0.04 0.02;0.02 0.04' "
        "dur='20s' repeatCount='indefinite'/>"
        "</feTurbulence>"
        "<feOffset in='edgeNoise1' dx='0' dy='0' result='offsetNoise1'>"
        "<animate attributeName='dx' values='-50;50;-50' dur='12s' repeatCount='indefinite'/>"
        "<animate attributeName='dy' values='-40;40;-40' dur='14s' repeatCount='indefinite'/>"
        "</feOffset>"
        "<feDisplacementMap in='edgeNoise2' in2='offsetNoise1' scale='5' xChannelSelector='R' "
        "yChannelSelector='G' result='combinedEdgeNoise'/>"
        "<feDisplacementMap in='SourceGraphic' in2='combinedEdgeNoise' scale='6' "
        "xChannelSelector='R' yChannelSelector='G'/>"
        "</filter>"
    )


def water_filter_defs(registry: TextureRegistry) -> List[str]:
    """The shared water filter from the asset bundle plus the edge wiggle filter."""
    defs = []
    water_asset = registry.fragment("water")
    if water_asset is not None and water_asset.defs:
        defs.append(water_asset.defs_markup())
    else:
        log.warning("Water filter definitions not available in the asset bundle.")
    defs.append(edge_wiggle_filter())
    return defs


class WaterBlobBuilder:
    """Finds connected water regions and builds their rounded outline."""

    def __init__(self, water: Sequence[bool], cols: int, rows: int):
        self.cols = cols
        self.rows = rows
        cells = np.zeros(cols * rows, dtype=bool)
        n = min(len(water), cols * rows)
        cells[:n] = np.asarray(water[:n], dtype=bool)
        self.grid = cells.reshape(rows, cols)

    def is_water(self, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.cols and bool(self.grid[row, col])

    def find_blobs(self) -> List[List[int]]:
        """
        4-connected flood fill with an explicit queue. Returns one sorted list
        of cell indices (row * cols + col) per blob.
        """
        visited = np.zeros_like(self.grid, dtype=bool)
        blobs: List[List[int]] = []

        for start in np.flatnonzero(self.grid):
            r, c = divmod(int(start), self.cols)
            if visited[r, c]:
                continue
            visited[r, c] = True
            q = deque([(r, c)])
            blob = []
            while q:
                rr, cc = q.popleft()
                blob.append(rr * self.cols + cc)
                for dr, dc in _NEIGHBOURS:
                    r2, c2 = rr + dr, cc + dc
                    if self.is_water(r2, c2) and not visited[r2, c2]:
                        visited[r2, c2] = True
                        q.append((r2, c2))
            blobs.append(sorted(blob))

        log.debug("Found %d water blobs.", len(blobs))
        return blobs

    def edge_flags(self, blobs: List[List[int]]) -> EdgeFlags:
        top = bottom = left = right = False
        for blob in blobs:
            for index in blob:
                row, col = divmod(index, self.cols)
                top = top or row == 0
                bottom = bottom or row == self.rows - 1
                left = left or col == 0
                right = right or col == self.cols - 1
        return EdgeFlags(top=top, bottom=bottom, left=left, right=right)

    def rounded_corners(self, row: int, col: int) -> Tuple[bool, bool, bool, bool]:
        """
        (top-left, top-right, bottom-right, bottom-left) rounding for a cell.
        A corner is rounded only when both axis neighbours and the diagonal
        neighbour exist and are dry, so concave junctions stay sharp.
        """
        has_top, has_bottom = row > 0, row < self.rows - 1
        has_left, has_right = col > 0, col < self.cols - 1
        top, bottom = self.is_water(row - 1, col), self.is_water(row + 1, col)
        left, right = self.is_water(row, col - 1), self.is_water(row, col + 1)

        def corner(has_v, has_h, wet_v, wet_h, dr, dc):
            return (
                has_v
                and has_h
                and not wet_v
                and not wet_h
                and not self.is_water(row + dr, col + dc)
            )

        return (
            corner(has_top, has_left, top, left, -1, -1),
            corner(has_top, has_right, top, right, -1, 1),
            corner(has_bottom, has_right, bottom, right, 1, 1),
            corner(has_bottom, has_left, bottom, left, 1, -1),
        )

    def cell_path(self, index: int, edges: EdgeFlags) -> str:
        row, col = divmod(index, self.cols)
        x, y = col * CELL_SIZE, row * CELL_SIZE
        width = height = CELL_SIZE

        # Bleed border cells past the map edge
        if row == 0 and edges.top:
            y -= WATER_EDGE_OVERLAP
            height += WATER_EDGE_OVERLAP
        if row == self.rows - 1 and edges.bottom:
            height += WATER_EDGE_OVERLAP
        if col == 0 and edges.left:
            x -= WATER_EDGE_OVERLAP
            width += WATER_EDGE_OVERLAP
        if col == self.cols - 1 and edges.right:
            width += WATER_EDGE_OVERLAP

        radii = [WATER_CORNER_RADIUS if r else 0 for r in self.rounded_corners(row, col)]
        return rounded_rect_path(x, y, width, height, *radii)

    def build_path(self) -> Tuple[str, EdgeFlags]:
        """Concatenated path data of every water cell, and the edge flags."""
        blobs = self.find_blobs()
        edges = self.edge_flags(blobs)
        paths = [self.cell_path(index, edges) for blob in blobs for index in blob]
        return " ".join(paths), edges


class WaterRenderer:
    """Encapsulates all logic for rendering the water layer."""

    def __init__(self, styles: dict):
        self.styles = styles

    def render(
        self, water: Optional[Sequence[bool]], grid: schema.GridDescriptor
    ) -> WaterLayer:
        """
        Builds the water mask for <defs> and the single masked overlay rect.
        Returns an empty layer when there is no water.
        """
        layer = WaterLayer()
        if not water:
            return layer

        builder = WaterBlobBuilder(water, grid.columns, grid.rows)
        path_data, edges = builder.build_path()
        if not path_data:
            return layer

        width, height = grid.pixel_width, grid.pixel_height
        mx = -WATER_EDGE_OVERLAP if edges.left else 0
        my = -WATER_EDGE_OVERLAP if edges.top else 0
        mw = width + (WATER_EDGE_OVERLAP if edges.left else 0) + (
            WATER_EDGE_OVERLAP if edges.right else 0
        )
        mh = height + (WATER_EDGE_OVERLAP if edges.top else 0) + (
            WATER_EDGE_OVERLAP if edges.bottom else 0
        )

        layer.defs.append(
            f"<mask id='{WATER_MASK_ID}' maskUnits='userSpaceOnUse' "
            f"x='{mx}' y='{my}' width='{mw}' height='{mh}'>"
            f"<rect x='{mx}' y='{my}' width='{mw}' height='{mh}' fill='black'/>"
            f"<g filter='url(#{EDGE_WIGGLE_FILTER_ID})'>"
            f"<path d='{path_data}' fill='white' fill-rule='evenodd'/>"
            "</g>"
            "</mask>"
        )

        color = self.styles.get("water_color", "#003f7f")
        opacity = self.styles.get("water_opacity", 0.7)
        layer.elements.append(
            f"<rect x='{mx}' y='{my}' width='{mw}' height='{mh}' fill='{color}' "
            f"filter='url(#{WATER_FILTER_ID})' fill-opacity='{opacity}' "
            f"mask='url(#{WATER_MASK_ID})'/>"
        )
        return layer
