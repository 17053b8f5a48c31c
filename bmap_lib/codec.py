# --- bmap_lib/codec.py ---
"""
Decoders (and the matching client-side encoders) for the compact per-cell
arrays carried inside a battlemap request:

- terrain ids, either two 4-bit nibbles per byte (legacy) or a 5-bit RLE stream
- water flags, one bit per cell, least-significant bit first
- scenery records, a variable-length little-endian binary stream
"""
import base64
import binascii
import logging
from typing import Any, Iterable, List, Optional, Sequence

import numpy as np

from bmap_lib.schema import SCENERY_TYPES, SceneryRecord

log = logging.getLogger("bmap.codec")

RLE_MARKER = 0xFF
RLE_MAX_RUN = 255
RLE_MIN_RUN = 3
TERRAIN_MASK = 0x1F  # 5 bits, ids 0-31

SCENERY_HEADER_SIZE = 6  # type, x-lo, x-hi, y-lo, y-hi, flags
FLAG_HAS_COLOR = 0x01
FLAG_HAS_SIZE = 0x02


def to_bytes(value: Any) -> Optional[bytes]:
    """
    Converts a packed JSON field into raw bytes.

    The client sends packed arrays either as a list of numbers (each truncated
    to its low 8 bits) or as a standard Base64 string. Anything else, an empty
    string or undecodable Base64 yields None so the field is treated as absent.
    """
    if isinstance(value, list):
        return bytes(int(v) & 0xFF for v in value)
    if isinstance(value, str):
        if not value:
            return None
        try:
            return base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as e:
            log.warning("Ignoring packed field with invalid Base64: %s", e)
            return None
    return None


def is_nibble_packed(byte_count: int, total_cells: int) -> bool:
    """Length heuristic separating the legacy nibble format from the RLE stream."""
    half = total_cells // 2
    return half - 1 <= byte_count <= half + 1


def decode_nibble_terrain(data: bytes, total_cells: int) -> List[int]:
    """Legacy format: cell i is the low nibble of byte i//2 when i is even, else the high nibble."""
    raw = np.frombuffer(data, dtype=np.uint8)
    cells = np.zeros(total_cells, dtype=np.uint8)
    low = raw & 0x0F
    high = raw >> 4
    interleaved = np.empty(raw.size * 2, dtype=np.uint8)
    interleaved[0::2] = low
    interleaved[1::2] = high
    n = min(total_cells, interleaved.size)
    cells[:n] = interleaved[:n]
    return cells.tolist()


def decode_rle_terrain(data: bytes, total_cells: int) -> List[int]:
    """
    5-bit RLE format: a byte below 0xFF is one cell's value, 0xFF starts a
    (value, count) run. A run cut short by the end of the stream stops decoding.
    Missing cells are filled with 0.
    """
    result: List[int] = []
    idx = 0
    while idx < len(data) and len(result) < total_cells:
        current = data[idx]
        if current == RLE_MARKER:
            if idx + 2 >= len(data):
                log.debug("Truncated RLE run at byte %d; zero-filling the remainder.", idx)
                break
            value = data[idx + 1] & TERRAIN_MASK
            count = min(data[idx + 2], total_cells - len(result))
            result.extend([value] * count)
            idx += 3
        else:
            result.append(current & TERRAIN_MASK)
            idx += 1

    if len(result) < total_cells:
        result.extend([0] * (total_cells - len(result)))
    return result


def decode_packed_terrain(data: Optional[bytes], total_cells: int) -> Optional[List[int]]:
    """Decodes 'bgp', auto-detecting the encoding from the payload length."""
    if data is None or total_cells <= 0:
        return None
    if is_nibble_packed(len(data), total_cells):
        log.debug("Decoding %d terrain bytes as 4-bit nibbles.", len(data))
        return decode_nibble_terrain(data, total_cells)
    log.debug("Decoding %d terrain bytes as 5-bit RLE.", len(data))
    return decode_rle_terrain(data, total_cells)


def decode_water(data: Optional[bytes], total_cells: int) -> Optional[List[bool]]:
    """Unpacks 8 water flags per byte (LSB first), truncated or zero-filled to the grid."""
    if not data or total_cells <= 0:
        return None
    bits = np.unpackbits(np.frombuffer(data, dtype=np.uint8), bitorder="little")
    cells = np.zeros(total_cells, dtype=bool)
    n = min(total_cells, bits.size)
    cells[:n] = bits[:n].astype(bool)
    return cells.tolist()


def decode_scenery(data: Optional[bytes]) -> List[SceneryRecord]:
    """
    Reads scenery records until the stream ends. A record that does not fit in
    the remaining bytes ends decoding silently.
    """
    records: List[SceneryRecord] = []
    if not data:
        return records

    idx = 0
    while idx + SCENERY_HEADER_SIZE <= len(data):
        type_index = data[idx]
        if type_index >= len(SCENERY_TYPES):
            type_index = 0
        x = data[idx + 1] | (data[idx + 2] << 8)
        y = data[idx + 3] | (data[idx + 4] << 8)
        flags = data[idx + 5]
        idx += SCENERY_HEADER_SIZE

        color = None
        if flags & FLAG_HAS_COLOR:
            if idx + 3 > len(data):
                break
            r, g, b = data[idx], data[idx + 1], data[idx + 2]
            color = f"#{r:02x}{g:02x}{b:02x}"
            idx += 3

        size = None
        if flags & FLAG_HAS_SIZE:
            if idx >= len(data):
                break
            size = data[idx]
            idx += 1

        records.append(
            SceneryRecord(type_index=type_index, x=x, y=y, flags=flags, color=color, size=size)
        )

    if idx < len(data):
        log.debug("Ignoring %d trailing scenery bytes.", len(data) - idx)
    return records


# --- Encoders (mirror the client) ---


def pack_nibbles(values: Sequence[int]) -> bytes:
    """Packs two 4-bit terrain ids per byte, even cells in the low nibble."""
    out = bytearray((len(values) + 1) // 2)
    for i, value in enumerate(values):
        if i % 2 == 0:
            out[i // 2] |= value & 0x0F
        else:
            out[i // 2] |= (value & 0x0F) << 4
    return bytes(out)


def encode_rle_terrain(values: Sequence[int]) -> bytes:
    """Encodes terrain ids as the 5-bit RLE stream (runs of 3 to 255 cells)."""
    out = bytearray()
    i = 0
    while i < len(values):
        current = values[i] & TERRAIN_MASK
        run = 1
        while (
            i + run < len(values)
            and run < RLE_MAX_RUN
            and values[i + run] & TERRAIN_MASK == current
        ):
            run += 1
        if run >= RLE_MIN_RUN:
            out.extend((RLE_MARKER, current, run))
        else:
            out.extend([current] * run)
        i += run
    return bytes(out)


def pack_water(flags: Sequence[bool]) -> bytes:
    """Packs water flags 8 per byte, least-significant bit first."""
    if not flags:
        return b""
    return np.packbits(np.asarray(flags, dtype=bool), bitorder="little").tobytes()


def encode_scenery(records: Iterable[SceneryRecord]) -> bytes:
    """Serializes scenery records; color and size are written when set."""
    out = bytearray()
    for record in records:
        flags = 0
        if record.color:
            flags |= FLAG_HAS_COLOR
        if record.size is not None:
            flags |= FLAG_HAS_SIZE
        out.append(record.type_index & 0xFF)
        out.extend(int(record.x).to_bytes(2, "little"))
        out.extend(int(record.y).to_bytes(2, "little"))
        out.append(flags)
        if record.color:
            out.extend(bytes.fromhex(record.color.lstrip("#")))
        if record.size is not None:
            out.append(record.size & 0xFF)
    return bytes(out)
