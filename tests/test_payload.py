import base64
import gzip
import json
import zlib

import pytest

from bmap_lib import codec, payload
from bmap_lib.errors import GridSizeError, PayloadDecodeError

SAMPLE = {"gw": 2, "gh": 2, "bg": [0, 1, 2, 3], "ts": [{"x": 16, "y": 16, "color": "#ff0000"}]}


def test_empty_data_is_rejected():
    with pytest.raises(PayloadDecodeError, match="Data parameter is empty"):
        payload.decode_base64_param("")


def test_invalid_base64_is_rejected():
    with pytest.raises(PayloadDecodeError):
        payload.decode_base64_param("%%%not-base64%%%")


def test_url_safe_alphabet_and_missing_padding():
    raw = b"\xfb\xff\xfe\x01"
    encoded = base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")
    assert "-" in encoded or "_" in encoded
    assert payload.decode_base64_param(encoded) == raw


def test_detects_gzip():
    text = json.dumps(SAMPLE)
    assert payload.bytes_to_json_string(gzip.compress(text.encode())) == text


def test_detects_plain_json():
    assert payload.bytes_to_json_string(b'{"gw": 1}') == '{"gw": 1}'


def test_falls_back_to_zlib_deflate():
    text = json.dumps(SAMPLE)
    assert payload.bytes_to_json_string(zlib.compress(text.encode())) == text


def test_falls_back_to_raw_deflate():
    text = json.dumps(SAMPLE)
    compressor = zlib.compressobj(wbits=-zlib.MAX_WBITS)
    raw = compressor.compress(text.encode()) + compressor.flush()
    assert payload.inflate_to_string(raw) == text


def test_parse_request_prefers_plain_terrain():
    request = payload.parse_request({"gw": 2, "gh": 1, "bg": [4, 5], "bgp": [0x21]})
    assert request.terrain == [4, 5]


def test_parse_request_packed_fields_as_lists_and_base64():
    water = base64.b64encode(codec.pack_water([True, False, False, True])).decode()
    request = payload.parse_request(
        {"gw": 2, "gh": 2, "bgp": list(codec.pack_nibbles([1, 2, 3, 4])), "wp": water}
    )
    assert request.terrain == [1, 2, 3, 4]
    assert request.water == [True, False, False, True]
    assert request.scenery == []
    assert request.tokens == []


def test_parse_request_legacy_pixel_size():
    request = payload.parse_request({"gw": None, "gh": None, "w": 300, "h": 200})
    assert (request.grid.pixel_width, request.grid.pixel_height) == (300, 200)
    assert request.grid.total_cells == 0
    assert request.terrain is None


def test_parse_request_defaults_grid():
    request = payload.parse_request({})
    assert (request.grid.grid_width, request.grid.grid_height) == (16, 16)
    assert request.grid.pixel_width == 512


def test_parse_request_rejects_non_object():
    with pytest.raises(ValueError):
        payload.parse_request([1, 2, 3])


@pytest.mark.parametrize(
    "grid", [{"gw": 50000, "gh": 50000}, {"gw": 1025, "gh": 1024}, {"gw": -2000, "gh": -2000}]
)
def test_parse_request_rejects_oversized_grid(grid, mocker):
    decode_water = mocker.spy(codec, "decode_water")
    with pytest.raises(GridSizeError):
        payload.parse_request(dict(grid, wp="AAAA"))
    decode_water.assert_not_called()


def test_parse_request_accepts_largest_grid():
    request = payload.parse_request({"gw": 1024, "gh": 1024})
    assert request.grid.total_cells == payload.MAX_GRID_CELLS


def test_tokens_and_scenery_are_decoded():
    eob = base64.b64encode(bytes([2, 100, 0, 50, 0, 0])).decode()
    request = payload.parse_request(
        {
            "ts": [
                {"id": 7, "x": 1, "y": 2, "gm": True, "url": " http://x/a.png ", "name": "Orc"},
                {"x": 3, "y": 4, "et": "stone", "ec": "#123456", "es": 30},
            ],
            "eob": eob,
        }
    )
    first, second = request.tokens
    assert first.id == 7 and first.gm_only and first.label == "Orc"
    assert second.is_environment_object and second.env_size == 30
    tokens = request.all_tokens()
    assert len(tokens) == 3
    assert tokens[-1].env_type == "house"
    assert (tokens[-1].x, tokens[-1].y) == (100.0, 50.0)


@pytest.mark.parametrize("compress", [True, False])
def test_encode_then_decode_request(compress):
    request = payload.decode_request(payload.encode_request(SAMPLE, compress=compress))
    assert request.terrain == [0, 1, 2, 3]
    assert request.tokens[0].color == "#ff0000"
    assert request.grid.pixel_width == 64


def test_decode_request_bad_json():
    data = base64.b64encode(b"{not json").decode()
    with pytest.raises(ValueError):
        payload.decode_request(data)
