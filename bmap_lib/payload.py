# --- bmap_lib/payload.py ---
import base64
import binascii
import gzip
import json
import logging
import zlib
from typing import Any, Dict

from bmap_lib import codec, schema
from bmap_lib.errors import GridSizeError, PayloadDecodeError

log = logging.getLogger("bmap.payload")

GZIP_MAGIC = b"\x1f\x8b"
JSON_OPEN_BRACE = 0x7B

# Largest grid accepted, checked before any cell array is allocated
MAX_GRID_CELLS = 1024 * 1024


def decode_base64_param(data: str) -> bytes:
    """
    Turns the 'data' query parameter into bytes. URL-safe characters are
    mapped back to the standard alphabet and missing padding is restored.
    """
    if not data:
        raise PayloadDecodeError("Data parameter is empty")

    base64_data = data
    if "-" in data or "_" in data:
        base64_data = data.replace("-", "+").replace("_", "/")
    padding_needed = (4 - len(base64_data) % 4) % 4
    base64_data += "=" * padding_needed
    log.debug("Base64 data after conversion, length: %d", len(base64_data))

    try:
        decoded = base64.b64decode(base64_data, validate=True)
    except (binascii.Error, ValueError) as e:
        log.error("Failed to decode base64: %s", e)
        log.debug("Base64 data (first 100 chars): %s", base64_data[:100])
        raise PayloadDecodeError(str(e)) from e

    if not decoded:
        raise PayloadDecodeError("Decoded bytes are empty")
    log.debug("Decoded base64 bytes length: %d", len(decoded))
    return decoded


def _inflate_gzip(data: bytes) -> str:
    return gzip.decompress(data).decode("utf-8")


def _inflate_deflate(data: bytes) -> str:
    # zlib-wrapped or bare DEFLATE streams are both accepted.
    try:
        return zlib.decompress(data).decode("utf-8")
    except zlib.error:
        return zlib.decompress(data, -zlib.MAX_WBITS).decode("utf-8")


def inflate_to_string(data: bytes) -> str:
    """Tries gzip first and falls back to DEFLATE when the gzip stream is unreadable."""
    if not data:
        return ""
    try:
        return _inflate_gzip(data)
    except (OSError, EOFError, zlib.error) as e:
        log.warning("GZIP decode failed (%s), attempting raw DEFLATE fallback", e)
        return _inflate_deflate(data)


def bytes_to_json_string(data: bytes) -> str:
    """Detects the compression of a decoded payload and returns the JSON text."""
    if data[:2] == GZIP_MAGIC:
        log.debug("Detected GZIP compressed data")
        return inflate_to_string(data)
    if data[0] == JSON_OPEN_BRACE:
        log.debug("Detected uncompressed JSON data")
        return data.decode("utf-8")
    log.debug("Unknown format, attempting decompression")
    return inflate_to_string(data)


def parse_request(payload: Dict[str, Any]) -> schema.BattlemapRequest:
    """Builds a BattlemapRequest from the JSON object, decoding every packed array."""
    if not isinstance(payload, dict):
        raise ValueError("Battlemap payload must be a JSON object")

    grid = schema.deserialize_grid(payload)
    total_cells = grid.total_cells
    if max(total_cells, grid.columns * grid.rows) > MAX_GRID_CELLS:
        raise GridSizeError(
            f"Grid of {grid.grid_width}x{grid.grid_height} cells exceeds {MAX_GRID_CELLS} cells"
        )

    terrain = None
    if payload.get("bg") is not None:
        terrain = [int(v) for v in payload["bg"]]
    elif payload.get("bgp") is not None:
        terrain = codec.decode_packed_terrain(codec.to_bytes(payload["bgp"]), total_cells)

    water = codec.decode_water(codec.to_bytes(payload.get("wp")), total_cells)
    scenery = codec.decode_scenery(codec.to_bytes(payload.get("eob")))
    tokens = schema.deserialize_tokens(payload.get("ts"))

    return schema.BattlemapRequest(
        grid=grid, terrain=terrain, water=water, tokens=tokens, scenery=scenery
    )


def decode_request(data: str) -> schema.BattlemapRequest:
    """Runs the full transport pipeline: Base64 -> decompression -> JSON -> request."""
    decoded = decode_base64_param(data)
    json_string = bytes_to_json_string(decoded)
    log.debug("Decoded JSON: %s", json_string)

    request = parse_request(json.loads(json_string))
    log.info(
        "Parsed request - grid: %sx%s, pixels: %dx%d, tokens: %d, scenery: %d, cells: %d",
        request.grid.grid_width if request.grid.grid_width is not None else "N/A",
        request.grid.grid_height if request.grid.grid_height is not None else "N/A",
        request.grid.pixel_width,
        request.grid.pixel_height,
        len(request.tokens),
        len(request.scenery),
        len(request.terrain) if request.terrain is not None else 0,
    )
    return request


def encode_request(payload: Dict[str, Any], compress: bool = True) -> str:
    """Client-side counterpart of decode_request: JSON -> gzip -> URL-safe Base64."""
    raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    if compress:
        raw = gzip.compress(raw, compresslevel=6)
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")
