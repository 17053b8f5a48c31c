import logging

from bmap_lib.app import create_app
from bmap_lib.log_utils import TOPICS, RichLogFormatter, resolve_debug_topics, setup_logging
from bmap_lib.services.config_service import ConfigService


def test_missing_file_is_created_with_defaults(tmp_path):
    path = tmp_path / "nested" / "bmap.cfg"
    settings = ConfigService(str(path)).get_settings()
    assert path.exists()
    assert settings["Render"]["water_color"] == "#003f7f"
    assert settings["Server"]["port"] == "8080"


def test_render_styles_are_typed(tmp_path):
    path = tmp_path / "bmap.cfg"
    path.write_text("[Render]\nwater_opacity = 0.4\ntoken_size = 30\ntoken_color = #ffffff\n")
    styles = ConfigService(str(path)).get_render_styles()
    assert styles["water_opacity"] == 0.4
    assert styles["token_size"] == 30
    assert styles["token_color"] == "#ffffff"
    assert styles["earth_color"] == "#8B4513"


def test_invalid_render_value_is_ignored(tmp_path):
    path = tmp_path / "bmap.cfg"
    path.write_text("[Render]\ntoken_size = large\n")
    styles = ConfigService(str(path)).get_render_styles()
    assert "token_size" not in styles
    assert styles["water_color"] == "#003f7f"


def test_save_settings_round_trip(tmp_path):
    service = ConfigService(str(tmp_path / "bmap.cfg"))
    service.save_settings({"Render": {"water_color": "#000080"}, "Server": {"port": 9000}})
    settings = service.get_settings()
    assert settings["Render"]["water_color"] == "#000080"
    assert settings["Server"]["port"] == "9000"


def test_app_reads_render_styles(tmp_path):
    path = tmp_path / "bmap.cfg"
    path.write_text("[Render]\nwater_color = #010203\n")
    app = create_app({"CONFIG_PATH": str(path)})
    assert app.render_styles["water_color"] == "#010203"
    assert app.render_styles["token_size"] == 40


def test_debug_topics_by_prefix():
    setup_logging(logging.WARNING, debug_topics="wat,pay")
    try:
        assert logging.getLogger("bmap.water").level == logging.DEBUG
        assert logging.getLogger("bmap.payload").level == logging.DEBUG
        assert logging.getLogger("bmap.codec").level == logging.NOTSET
    finally:
        for topic in ("water", "payload"):
            logging.getLogger(f"bmap.{topic}").setLevel(logging.NOTSET)


def test_formatter_prefixes_every_line():
    record = logging.LogRecord("bmap.render", logging.INFO, __file__, 1, "a\nb", None, None)
    lines = RichLogFormatter().format(record).split("\n")
    assert lines == ["INFO :render  : a", "INFO :render  : b"]


def test_resolve_debug_topics():
    assert resolve_debug_topics("all") == set(TOPICS)
    assert resolve_debug_topics("wat, pay") == {"water", "payload"}
    assert resolve_debug_topics("nope") == set()


def test_plain_formatter_has_no_escape_codes():
    record = logging.LogRecord("bmap.api", logging.ERROR, __file__, 1, "boom", None, None)
    assert RichLogFormatter().format(record) == "ERROR:api     : boom"

    colored = RichLogFormatter(use_color=True).format(record)
    assert colored.startswith("\033[38;5;210mERROR\033[0m:\033[1mapi     \033[0m: ")
