#!/usr/bin/env python3
"""bmap: Serves the battlemap image API or renders a single payload to SVG."""
import argparse
import json
import logging
import sys

from bmap_lib.app import CONFIG_PATH, create_app
from bmap_lib.assets import TextureRegistry
from bmap_lib.log_utils import setup_logging
from bmap_lib.payload import encode_request
from bmap_lib.rendering import svg_renderer
from bmap_lib.services.config_service import ConfigService


def run_rendering(data: str, output_name: str, base_url: str):
    """Renders an encoded 'data' parameter and saves it as <output_name>.svg."""
    log = logging.getLogger("bmap.main")
    registry = TextureRegistry.load()
    styles = ConfigService(CONFIG_PATH).get_render_styles()
    svg_content = svg_renderer.render_battlemap_image(data, registry, styles, base_url)

    output_path = f"{output_name}.svg"
    try:
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(svg_content)
        log.info("Successfully saved SVG to '%s'", output_path)
    except IOError as e:
        log.error("Could not write SVG file: %s", e)


def run_server(host: str, port: int, config_overrides: dict):
    log = logging.getLogger("bmap.main")
    try:
        app = create_app(config_overrides)
        log.info("bmap application created successfully.")
    except Exception as e:
        log.critical("Failed to create the bmap application: %s", e, exc_info=True)
        sys.exit(1)

    try:
        log.info("Starting bmap server at http://%s:%d...", host, port)
        log.info("Press CTRL+C to stop the server.")
        from waitress import serve

        serve(app, host=host, port=port)
    except KeyboardInterrupt:
        log.info("\nServer stopped by user. Exiting.")
        sys.exit(0)
    except Exception as e:
        log.critical("The server failed to run: %s", e, exc_info=True)
        sys.exit(1)


def _add_logging_args(parser):
    g_log = parser.add_argument_group("Logging & Output")
    g_log.add_argument("-v", "--verbose", action="store_true", help="Enable INFO logging.")
    g_log.add_argument("--color-logs", action="store_true", help="Enable colored logging.")
    g_log.add_argument("--log-file", metavar="FILE", help="Redirect log output to a file.")
    g_log.add_argument(
        "-d",
        "--debug",
        nargs="?",
        const="all",
        dest="debug_topics",
        metavar="TOPICS",
        help="Enable DEBUG logging (all,api,codec,payload,assets,render,water,config).",
    )


def get_cli_args(argv=None):
    """Configures and parses command-line arguments."""
    p = argparse.ArgumentParser(description="Renders encoded battlemaps to SVG.")
    sub = p.add_subparsers(dest="command", required=True)

    p_serve = sub.add_parser("serve", help="Run the HTTP API.")
    p_serve.add_argument("--host", default=None, help="Bind address (default from bmap.cfg).")
    p_serve.add_argument("--port", type=int, default=None, help="Port (default from bmap.cfg).")
    p_serve.add_argument("--assets", default=None, help="Directory with the SVG asset bundle.")

    p_render = sub.add_parser("render", help="Render one payload to an SVG file.")
    src = p_render.add_mutually_exclusive_group(required=True)
    src.add_argument("-D", "--data", help="Encoded 'data' parameter, as sent by the client.")
    src.add_argument("-i", "--input", help="Path to a plain JSON payload to encode and render.")
    p_render.add_argument("-o", "--output", required=True, help="Base name for the output file.")

    p_encode = sub.add_parser("encode", help="Print the 'data' parameter for a JSON payload.")
    p_encode.add_argument("-i", "--input", required=True, help="Path to a JSON payload.")
    p_encode.add_argument(
        "--no-compress", action="store_true", help="Encode the JSON without gzip."
    )

    for sp in (p_serve, p_render):
        sp.add_argument(
            "--base-url",
            default="http://localhost:8080/api",
            help="API base URL used in scenery image links.",
        )

    # Logging options follow the subcommand: `bmap.py serve -d api`
    for sp in (p_serve, p_render, p_encode):
        _add_logging_args(sp)
    return p.parse_args(argv)


def _load_payload(path: str) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def main():
    """Main entry point for the bmap CLI."""
    args = get_cli_args()
    log_level = logging.INFO if args.verbose else logging.WARNING
    if args.debug_topics:
        log_level = logging.DEBUG

    setup_logging(log_level, args.color_logs, args.debug_topics, args.log_file)
    log = logging.getLogger("bmap.main")
    log.debug("Arguments received: %s", vars(args))

    if args.command == "serve":
        server = ConfigService(CONFIG_PATH).get_settings().get("Server", {})
        host = args.host or server.get("host", "127.0.0.1")
        port = args.port or int(server.get("port", 8080))
        overrides = {"API_BASE_URL": args.base_url}
        if args.assets:
            overrides["ASSETS_PATH"] = args.assets
        run_server(host, port, overrides)
        return

    if args.command == "encode":
        try:
            print(encode_request(_load_payload(args.input), compress=not args.no_compress))
        except (IOError, ValueError) as e:
            log.critical("Failed to load JSON payload: %s", e)
            sys.exit(1)
        return

    data = args.data
    if args.input:
        try:
            data = encode_request(_load_payload(args.input))
        except (IOError, ValueError) as e:
            log.critical("Failed to load JSON payload: %s", e)
            sys.exit(1)
    run_rendering(data, args.output, args.base_url)


if __name__ == "__main__":
    main()
