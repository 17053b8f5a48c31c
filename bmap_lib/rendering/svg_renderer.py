# --- bmap_lib/rendering/svg_renderer.py ---
import logging
from typing import Any, Dict, List, Optional
from xml.sax.saxutils import escape

from bmap_lib import payload, schema
from bmap_lib.assets import TextureRegistry
from bmap_lib.errors import PayloadDecodeError
from .constants import DOCTYPE, SVG_NS, XLINK_NS
from .terrain import TerrainRenderer
from .tokens import TokenPlacer
from .water import WaterRenderer, water_filter_defs

log = logging.getLogger("bmap.render")

DEFAULT_BASE_URL = "http://localhost:8080/api"


class SVGRenderer:
    """Orchestrates the generation of the final SVG document."""

    def __init__(
        self,
        request: schema.BattlemapRequest,
        registry: TextureRegistry,
        style_options: Optional[dict] = None,
        base_url: str = DEFAULT_BASE_URL,
    ):
        self.request = request
        self.registry = registry
        self.style_options = style_options or {}
        self.styles = self._initialize_styles()
        self.terrain_renderer = TerrainRenderer(registry, self.styles)
        self.water_renderer = WaterRenderer(self.styles)
        self.token_placer = TokenPlacer(base_url, self.styles)

    def _initialize_styles(self) -> Dict[str, Any]:
        """Sets up the default and user-provided styles."""
        styles = {
            "water_color": "#003f7f",
            "water_opacity": 0.7,
            "token_size": 40,
            "token_color": "#808080",
            "token_border_color": "#000000",
            "earth_color": self.registry.earth_color(),
        }
        styles.update({k: v for k, v in self.style_options.items() if v is not None})
        log.debug("Using styles: %s", styles)
        return styles

    def render(self) -> str:
        """Main method to generate the full SVG string."""
        grid = self.request.grid
        width, height = grid.pixel_width, grid.pixel_height

        terrain = self.terrain_renderer.render(self.request.terrain, grid)
        water = self.water_renderer.render(self.request.water, grid)
        tokens = self.token_placer.render(self.request.all_tokens())

        defs: List[str] = list(terrain.defs)
        defs.extend(water_filter_defs(self.registry))
        defs.extend(water.defs)

        svg = [
            DOCTYPE,
            f"<svg xmlns='{SVG_NS}' xmlns:xlink='{XLINK_NS}' width='{width}' height='{height}'>",
        ]
        if defs:
            svg.append(f"<defs>{''.join(defs)}</defs>")
        svg.extend(terrain.elements)
        svg.extend(water.elements)
        svg.extend(tokens)
        svg.append("</svg>")

        log.info("Generated SVG %dx%d with %d tokens", width, height, len(tokens))
        return "".join(svg)


def render_svg(
    request: schema.BattlemapRequest,
    registry: TextureRegistry,
    style_options: Optional[dict] = None,
    base_url: str = DEFAULT_BASE_URL,
) -> str:
    """Renders a decoded battlemap request into a complete SVG document."""
    renderer = SVGRenderer(request, registry, style_options, base_url)
    return renderer.render()


def render_error_svg(message: str) -> str:
    """A small red placeholder image carrying the error text."""
    return (
        f"{DOCTYPE}<svg xmlns='{SVG_NS}' width='400' height='100'>"
        "<rect width='400' height='100' fill='#ffcccc'/>"
        "<text x='200' y='50' text-anchor='middle' font-family='Arial, sans-serif' "
        f"font-size='14' fill='#cc0000'>{escape(message)}</text>"
        "</svg>"
    )


def render_battlemap_image(
    data: Optional[str],
    registry: TextureRegistry,
    style_options: Optional[dict] = None,
    base_url: str = DEFAULT_BASE_URL,
) -> str:
    """
    Decodes the 'data' parameter and renders it. Never raises: decode and
    render failures are turned into an error image.
    """
    try:
        request = payload.decode_request(data or "")
        return render_svg(request, registry, style_options, base_url)
    except PayloadDecodeError as e:
        log.error("Invalid base64 data: %s", e)
        return render_error_svg(f"Invalid base64 encoding: {e}")
    except Exception as e:
        log.error("Error generating battlemap image: %s", e, exc_info=True)
        detail = str(e) or e.__class__.__name__
        return render_error_svg(f"Error processing battlemap data: {detail}")
