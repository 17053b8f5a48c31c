import xml.etree.ElementTree as ET

from bmap_lib import payload
from bmap_lib.assets import TextureRegistry


def test_invalid_data_still_returns_svg(client):
    response = client.get("/api/battlemap-image", query_string={"data": "%%%not-base64%%%"})
    assert response.status_code == 200
    assert response.mimetype == "image/svg+xml"
    body = response.get_data(as_text=True)
    assert "<text" in body and "Invalid base64 encoding" in body


def test_missing_data_parameter(client):
    response = client.get("/api/battlemap-image")
    assert response.status_code == 200
    assert "Data parameter is empty" in response.get_data(as_text=True)


def test_battlemap_image(client):
    data = payload.encode_request(
        {"gw": 2, "gh": 2, "bg": [0, 0, 0, 0], "ts": [{"x": 16, "y": 16, "color": "#ff0000"}]}
    )
    response = client.get("/api/battlemap-image", query_string={"data": data})
    assert response.status_code == 200
    assert response.mimetype == "image/svg+xml"
    assert response.headers["Cache-Control"] == "public, max-age=604800"
    body = response.get_data(as_text=True)
    assert "width='64' height='64'" in body
    assert body.count("fill='#ff0000'") == 1


def test_image_uses_configured_base_url(tmp_path):
    from bmap_lib.app import create_app

    app = create_app(
        {"CONFIG_PATH": str(tmp_path / "bmap.cfg"), "API_BASE_URL": "https://dsa.example/api"}
    )
    data = payload.encode_request({"gw": 1, "gh": 1, "ts": [{"x": 5, "y": 5, "et": "house"}]})
    body = app.test_client().get("/api/battlemap-image", query_string={"data": data}).get_data(
        as_text=True
    )
    assert "href='https://dsa.example/api/env-object?type=house'" in body


def test_backgrounds(client):
    response = client.get("/api/battlemap-image/backgrounds")
    assert response.status_code == 200
    backgrounds = response.get_json()
    assert len(backgrounds) == 8
    assert backgrounds[0] == {
        "id": 0,
        "name": "default",
        "displayName": "Default",
        "color": "#228B22",
    }
    assert [b["id"] for b in backgrounds] == list(range(8))


def test_env_object_defaults(client):
    response = client.get("/api/env-object")
    assert response.status_code == 200
    assert response.mimetype == "image/svg+xml"
    assert response.headers["Cache-Control"] == "public, max-age=604800"
    body = response.get_data(as_text=True)
    assert body.startswith("<!DOCTYPE svg")
    assert "width='80' height='80' viewBox='0 0 32 32'" in body
    assert "<g fill='#228B22'>" in body
    assert "url(#treeCanopy)" in body


def test_env_object_parameters(client):
    body = client.get(
        "/api/env-object", query_string={"type": "house", "size": "120", "color": "#112233"}
    ).get_data(as_text=True)
    assert "width='120'" in body
    assert "<g fill='#112233'>" in body
    assert "#a0522d" in body


def test_env_object_sanitises_parameters(client):
    body = client.get(
        "/api/env-object", query_string={"type": "stone", "size": "10", "color": "red"}
    ).get_data(as_text=True)
    assert "width='80'" in body
    assert "<g fill='#696969'>" in body

    body = client.get("/api/env-object", query_string={"type": "dragon"}).get_data(as_text=True)
    assert "url(#treeCanopy)" in body


def test_env_object_rejects_markup_in_color(client):
    for color in ("#' onload='alert(1)", "#fff\n", "#12345g"):
        body = client.get("/api/env-object", query_string={"color": color}).get_data(as_text=True)
        assert "onload" not in body
        assert "<g fill='#228B22'>" in body
        ET.fromstring(body)

    body = client.get("/api/env-object", query_string={"color": "#abc"}).get_data(as_text=True)
    assert "<g fill='#abc'>" in body


def test_battlemap_image_escapes_token_attributes(client):
    data = payload.encode_request({"gw": 1, "gh": 1, "ts": [{"x": 5, "y": 5, "color": "<b>"}]})
    body = client.get("/api/battlemap-image", query_string={"data": data}).get_data(as_text=True)
    root = ET.fromstring(body)
    circle = root.find("{http://www.w3.org/2000/svg}circle")
    assert circle.get("fill") == "<b>"


def test_env_object_fallback_drawings(app):
    app.texture_registry = TextureRegistry([], {}, {})
    client = app.test_client()
    house = client.get("/api/env-object", query_string={"type": "house"})
    assert "<polygon points='0,0 80,0 60,40 20,40' fill='#654321'/>" in house.get_data(as_text=True)
    tree = client.get("/api/env-object", query_string={"type": "tree3"})
    assert "<circle cx='40' cy='50' r='20' fill='#228B22'/>" in tree.get_data(as_text=True)


def test_env_object_error_is_svg(client, mocker):
    mocker.patch("bmap_lib.api.env_object.object_markup", side_effect=RuntimeError("boom"))
    response = client.get("/api/env-object")
    assert response.status_code == 500
    assert response.mimetype == "image/svg+xml"
    assert "Error: boom" in response.get_data(as_text=True)


def test_env_object_types(client):
    types = client.get("/api/env-object/types").get_json()
    assert [t["type"] for t in types] == [f"tree{i}" for i in range(1, 9)] + ["stone", "house"]
    assert types[0] == {"type": "tree1", "label": "Tree1", "defaultColor": "#228B22", "defaultSize": 80}
    assert types[8]["defaultColor"] == "#696969"
    assert types[9] == {"type": "house", "label": "House", "defaultColor": "#D2691E", "defaultSize": 80}


def test_health(client):
    assert client.get("/health").get_data(as_text=True) == "OK"


def test_unknown_route_is_json(client):
    response = client.get("/api/nothing-here")
    assert response.status_code == 404
    assert "error" in response.get_json()
