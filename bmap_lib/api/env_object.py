# --- bmap_lib/api/env_object.py ---
import logging
import re

from flask import Blueprint, Response, current_app, jsonify, request

from bmap_lib.rendering.constants import DOCTYPE, SVG_NS, XLINK_NS
from bmap_lib.rendering.svg_renderer import render_error_svg

bp = Blueprint("env_object", __name__)
log = logging.getLogger("bmap.api")

TREE_TYPES = tuple(f"tree{i}" for i in range(1, 9))
TYPE_OPTIONS = TREE_TYPES + ("stone", "house")
DEFAULT_TYPE = "tree1"
DEFAULT_SIZE = 80
MIN_SIZE = 20

DEFAULT_COLORS = {"stone": "#696969", "house": "#D2691E"}
TREE_COLOR = "#228B22"

_COLOR = re.compile(r"#[0-9A-Fa-f]{3,8}")

# Type -> scenery fragment name
_FRAGMENTS = {"stone": "rock", "house": "house"}
_FALLBACK_DRAWINGS = {
    "tree": "<circle cx='40' cy='50' r='20' fill='#228B22'/>",
    "house": (
        "<rect x='0' y='0' width='80' height='80' fill='#8B4513'/>"
        "<polygon points='0,0 80,0 60,40 20,40' fill='#654321'/>"
    ),
}


def normalize_type(object_type):
    """Maps the requested type onto a known option; anything else is a tree."""
    if object_type in TYPE_OPTIONS:
        return object_type
    return DEFAULT_TYPE


def default_color(object_type: str) -> str:
    return DEFAULT_COLORS.get(object_type, TREE_COLOR)


def type_label(object_type: str) -> str:
    return object_type[:1].upper() + object_type[1:]


def object_markup(registry, object_type: str) -> str:
    """Body of the scenery fragment for a type, or a simple built-in drawing."""
    fragment_name = _FRAGMENTS.get(object_type, "tree")
    fragment = registry.fragment(fragment_name)
    if fragment is not None:
        return fragment.inner_markup()
    log.error("Scenery fragment '%s' not available, using fallback drawing.", fragment_name)
    fallback = _FALLBACK_DRAWINGS.get(fragment_name)
    if fallback is None:
        raise LookupError(f"Scenery fragment '{fragment_name}' not found")
    return fallback


@bp.route("", methods=["GET"])
def get_environment_object():
    """Renders a standalone SVG for one scenery object type."""
    try:
        object_type = normalize_type(request.args.get("type") or DEFAULT_TYPE)
        color = request.args.get("color") or ""
        if not _COLOR.fullmatch(color):
            color = default_color(object_type)
        size = request.args.get("size", type=int)
        if size is None or size < MIN_SIZE:
            size = DEFAULT_SIZE

        body = object_markup(current_app.texture_registry, object_type)
        svg = (
            f"{DOCTYPE}<svg xmlns='{SVG_NS}' xmlns:xlink='{XLINK_NS}' "
            f"width='{size}' height='{size}' viewBox='0 0 32 32'>"
            f"<g fill='{color}'>{body}</g></svg>"
        )
        log.debug("Rendered env object type=%s color=%s size=%d", object_type, color, size)
        response = Response(svg, mimetype="image/svg+xml")
        response.headers["Cache-Control"] = (
            f"public, max-age={current_app.config['CACHE_MAX_AGE']}"
        )
        return response
    except Exception as e:
        log.error("Failed to render environment object: %s", e, exc_info=True)
        return Response(
            render_error_svg(f"Error: {str(e) or 'Unknown error'}"),
            status=500,
            mimetype="image/svg+xml",
        )


@bp.route("/types", methods=["GET"])
def list_types():
    """Lists every scenery object type with its label and defaults."""
    return jsonify(
        [
            {
                "type": t,
                "label": type_label(t),
                "defaultColor": default_color(t),
                "defaultSize": DEFAULT_SIZE,
            }
            for t in TYPE_OPTIONS
        ]
    )
