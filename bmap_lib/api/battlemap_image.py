# --- bmap_lib/api/battlemap_image.py ---
import logging
from flask import Blueprint, Response, current_app, jsonify, request

from bmap_lib.rendering import svg_renderer

bp = Blueprint("battlemap_image", __name__)
log = logging.getLogger("bmap.api")

SVG_MIMETYPE = "image/svg+xml"


@bp.route("", methods=["GET"])
def get_battlemap_image():
    """
    Renders the battlemap encoded in the 'data' query parameter. Always
    answers 200 with an SVG; failures come back as an error image.
    """
    data = request.args.get("data", "")
    log.info("Battlemap image requested, data length: %d", len(data))

    svg = svg_renderer.render_battlemap_image(
        data,
        current_app.texture_registry,
        style_options=current_app.render_styles,
        base_url=current_app.config["API_BASE_URL"],
    )
    response = Response(svg, mimetype=SVG_MIMETYPE)
    response.headers["Cache-Control"] = f"public, max-age={current_app.config['CACHE_MAX_AGE']}"
    return response


@bp.route("/backgrounds", methods=["GET"])
def list_backgrounds():
    """Lists the registered background textures ordered by id."""
    textures = current_app.texture_registry.all_textures()
    return jsonify([t.to_dict() for t in textures])
