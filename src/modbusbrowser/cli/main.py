#!/usr/bin/env python3
"""Modbus Browser dashboard server.

Starts the JSON API that polls the configured Modbus TCP devices and
serves their live register values.

Usage:
    modbusbrowser                            # listen on :8080
    modbusbrowser --port 9000 --log-level info
    modbusbrowser --config servers.json      # import servers at startup
    modbusbrowser --help
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from aiohttp import web

from modbusbrowser import __version__
from modbusbrowser.constants import DEFAULT_HTTP_PORT
from modbusbrowser.exceptions import ConfigurationError
from modbusbrowser.models import ConfigFile
from modbusbrowser.registry import ServerRegistry
from modbusbrowser.web import REGISTRY_KEY, create_app

_LOGGER = logging.getLogger(__name__)

LOG_LEVELS = {
    "error": logging.ERROR,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="modbusbrowser",
        description="A web-based Modbus client for monitoring Modbus TCP devices.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Log Levels:
  error  - Only show error messages (default)
  info   - Show error and info messages
  debug  - Show all messages including debug

Examples:
  modbusbrowser --port 8080 --log-level debug
  modbusbrowser --port 9000 --log-level info
  modbusbrowser --config servers.json
""",
    )
    parser.add_argument(
        "--port",
        "-p",
        type=int,
        default=DEFAULT_HTTP_PORT,
        help="Port to start the server on (default: %(default)s)",
    )
    parser.add_argument(
        "--bind",
        default="0.0.0.0",
        help="Address to listen on (default: %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        default="error",
        help="Log level: error, info, debug (default: %(default)s)",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        help="Server configuration JSON to import at startup",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def resolve_log_level(name: str) -> int:
    """Map a level name to a logging level; unknown names mean error."""
    return LOG_LEVELS.get(name.strip().lower(), logging.ERROR)


def load_config(path: Path) -> ConfigFile:
    """Read and validate a configuration document.

    Raises:
        ConfigurationError: If the file is unreadable or invalid
    """
    try:
        data = json.loads(path.read_text())
    except (OSError, ValueError) as err:
        raise ConfigurationError(f"Failed to read {path}: {err}") from err
    config = ConfigFile.from_dict(data)
    config.validate()
    return config


def build_app(config: ConfigFile | None = None) -> web.Application:
    """Create the application, importing *config* on startup."""
    app = create_app(ServerRegistry())

    if config is not None:

        async def _import_servers(app: web.Application) -> None:
            states = await app[REGISTRY_KEY].import_config(config)
            _LOGGER.info("Imported %d servers from configuration", len(states))

        app.on_startup.append(_import_servers)
    return app


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=resolve_log_level(args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = None
    if args.config is not None:
        try:
            config = load_config(args.config)
        except ConfigurationError as err:
            parser.error(str(err))

    print(f"Modbus Browser v{__version__}")
    _LOGGER.error("Starting server on port %d...", args.port)
    web.run_app(build_app(config), host=args.bind, port=args.port, print=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
