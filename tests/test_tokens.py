import xml.etree.ElementTree as ET

from bmap_lib.rendering.tokens import TokenPlacer, escape_attribute
from bmap_lib.schema import SceneryRecord, Token

BASE_URL = "http://localhost:8080/api"


def placer(styles=None):
    return TokenPlacer(BASE_URL, styles or {})


def test_plain_token_is_a_circle():
    svg = placer().render_token(Token(x=16, y=16, color="#ff0000"))
    assert svg == (
        "<circle cx='16' cy='16' r='20' fill='#ff0000' stroke='#000000' stroke-width='2'/>"
    )


def test_circle_defaults_and_border():
    assert "fill='#808080'" in placer().render_token(Token(x=1, y=2))
    svg = placer().render_token(Token(x=1, y=2, border_color="#00ff00"))
    assert "stroke='#00ff00' stroke-width='2'" in svg


def test_token_without_position_is_skipped():
    assert placer().render_token(Token(x=None, y=5)) is None
    assert placer().render([Token(x=1), Token(x=3, y=4)]) == [
        "<circle cx='3' cy='4' r='20' fill='#808080' stroke='#000000' stroke-width='2'/>"
    ]


def test_avatar_token_is_a_centered_image():
    svg = placer().render_token(Token(x=100, y=60, avatar_url=" http://x/a.png?u=1&v='2' "))
    assert svg == (
        "<image x='80' y='40' width='40' height='40' "
        "href='http://x/a.png?u=1&amp;v=&#39;2&#39;' preserveAspectRatio='xMidYMid slice'/>"
    )


def test_environment_token_links_to_env_object():
    token = Token(x=100, y=50, env_type="tree", env_color="#00ff00", env_size=60)
    assert placer().image_url(token) == f"{BASE_URL}/env-object?type=tree&color=%2300ff00&size=60"
    svg = placer().render_token(token)
    assert "x='70' y='20' width='60' height='60'" in svg
    assert "href='http://localhost:8080/api/env-object?type=tree&amp;color=%2300ff00&amp;size=60'" in svg


def test_environment_token_wins_over_avatar():
    token = Token(x=0, y=0, env_type="stone", avatar_url="http://x/a.png")
    assert placer().image_url(token) == f"{BASE_URL}/env-object?type=stone"
    assert "width='40'" in placer().render_token(token)


def test_scenery_becomes_environment_token():
    record = SceneryRecord(type_index=2, x=10, y=20, flags=3, color="#a0b0c0", size=24)
    token = record.to_token()
    assert token.is_environment_object
    assert placer().image_url(token) == f"{BASE_URL}/env-object?type=house&color=%23a0b0c0&size=24"


def test_request_order_is_preserved():
    tokens = [Token(x=1, y=1, color="#111111"), Token(x=2, y=2, color="#222222")]
    elements = placer().render(tokens)
    assert "#111111" in elements[0] and "#222222" in elements[1]


def test_configured_token_style():
    svg = placer({"token_size": 30, "token_color": "#abcdef"}).render_token(Token(x=0, y=0))
    assert "r='15'" in svg and "fill='#abcdef'" in svg


def test_escape_attribute():
    assert escape_attribute("a&b'c\"d") == "a&amp;b&#39;c&quot;d"
    assert escape_attribute("<b>") == "&lt;b&gt;"


def test_token_markup_is_well_formed():
    token = Token(x=5, y=5, color="<b>", border_color="'/><script/>")
    circle = ET.fromstring(placer().render_token(token))
    assert circle.get("fill") == "<b>"
    assert circle.get("stroke") == "'/><script/>"

    avatar = Token(x=5, y=5, avatar_url="http://img/a.png?x=<1>&y='2'")
    image = ET.fromstring(placer().render_token(avatar))
    assert image.get("href") == "http://img/a.png?x=<1>&y='2'"
