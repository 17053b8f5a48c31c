import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from bmap_lib import schema
from bmap_lib.assets import SvgAsset, TextureRegistry
from .constants import CELL_SIZE
from .geometry import squiggly_path_data

log = logging.getLogger("bmap.render")


@dataclass
class TerrainLayer:
    """Terrain output: shared definitions for <defs> and the drawing elements."""

    defs: List[str] = field(default_factory=list)
    elements: List[str] = field(default_factory=list)


def clip_path_id(texture_name: str) -> str:
    return f"{texture_name}-clip"


class TerrainRenderer:
    """Renders the terrain grid as flat cells plus one clipped fill per texture."""

    def __init__(self, registry: TextureRegistry, styles: dict):
        self.registry = registry
        self.styles = styles

    def render(
        self, terrain: Optional[Sequence[int]], grid: schema.GridDescriptor
    ) -> TerrainLayer:
        width, height = grid.pixel_width, grid.pixel_height
        cols, rows = grid.columns, grid.rows
        layer = TerrainLayer()

        if not terrain or len(terrain) < cols * rows:
            earth_id = self.registry.texture_id("earth")
            color = (
                self.registry.color(earth_id)
                if earth_id is not None
                else self.styles.get("earth_color", "#8B4513")
            )
            layer.elements.append(
                f"<rect x='0' y='0' width='{width}' height='{height}' fill='{color}'/>"
            )
            log.debug("No usable cell backgrounds provided, using default earth background")
            return layer

        # Texture name -> subpaths of all its cells, and the first id seen for it
        clip_paths: Dict[str, List[str]] = {}
        texture_ids: Dict[str, int] = {}

        for row in range(rows):
            for col in range(cols):
                texture_id = terrain[row * cols + col]
                name = self.registry.texture_name(texture_id)
                if self.registry.is_flat(name):
                    color = self.registry.color(texture_id)
                    layer.elements.append(
                        f"<rect x='{col * CELL_SIZE}' y='{row * CELL_SIZE}' "
                        f"width='{CELL_SIZE}' height='{CELL_SIZE}' fill='{color}'/>"
                    )
                else:
                    clip_paths.setdefault(name, []).append(squiggly_path_data(col, row))
                    texture_ids.setdefault(name, texture_id)

        for name, subpaths in clip_paths.items():
            layer.defs.append(
                f"<clipPath id='{clip_path_id(name)}'><path d='{' '.join(subpaths)}'/></clipPath>"
            )
            asset = self.registry.texture_asset(name)
            if asset is not None and asset.defs:
                layer.defs.append(asset.defs_markup())
            layer.elements.append(self._render_texture(name, texture_ids[name], asset, width, height))

        log.debug(
            "Rendered %d cell backgrounds with %d texture types", len(terrain), len(clip_paths)
        )
        return layer

    def _render_texture(
        self, name: str, texture_id: int, asset: Optional[SvgAsset], width: int, height: int
    ) -> str:
        """Draws one texture across the whole canvas, clipped to its cells."""
        clip = f"url(#{clip_path_id(name)})"
        color = self.registry.color(texture_id)

        if asset is None:
            log.warning("Texture '%s' has no SVG asset; using a flat colour.", name)
            return (
                f"<rect x='0' y='0' width='{width}' height='{height}' "
                f"fill='{color}' clip-path='{clip}'/>"
            )

        drawables = asset.drawables
        if not drawables:
            filter_id = self.registry.filter_id(texture_id)
            filter_attr = f" filter='{filter_id}'" if filter_id else ""
            return (
                f"<rect x='-5' y='-5' width='{width}' height='{height}' "
                f"fill='{color}'{filter_attr} clip-path='{clip}'/>"
            )

        parts = []
        for element in drawables:
            updates = {"clip-path": clip}
            if element.get("width") is not None:
                updates["width"] = str(width)
            if element.get("height") is not None:
                updates["height"] = str(height)
            if element.get("x") is not None:
                updates["x"] = "0"
            if element.get("y") is not None:
                updates["y"] = "0"
            parts.append(element.with_attrs(updates).to_svg())
        return "".join(parts)
