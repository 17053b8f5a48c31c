import pytest

from bmap_lib.app import create_app
from bmap_lib.assets import TextureRegistry


@pytest.fixture(scope="session")
def registry():
    """The texture registry built from the packaged asset bundle."""
    return TextureRegistry.load()


@pytest.fixture
def app(tmp_path):
    app = create_app(
        {
            "TESTING": True,
            "CONFIG_PATH": str(tmp_path / "bmap.cfg"),
        }
    )
    yield app


@pytest.fixture
def client(app):
    return app.test_client()
