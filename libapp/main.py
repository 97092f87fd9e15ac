"""Command that connects to the database and serves the API."""

from __future__ import annotations

import argparse
import logging
import os
from collections.abc import Sequence
from pathlib import Path

from dotenv import load_dotenv

from libapp import auth, books  # noqa: F401  (importing registers the modules)
from libapp.config import ConfigError, load_config
from libapp.database import connect
from libapp.server import Container, load_modules, new_server

log = logging.getLogger(__name__)

DEFAULT_PORT = "8080"


def _load_environment() -> None:
    env_file = Path.cwd() / ".env"
    if env_file.is_file():
        load_dotenv(env_file)
    else:
        log.info("No .env file found, using environment variables")


def main(argv: Sequence[str] | None = None) -> None:
    """Start the HTTP server on the port named by PORT (default 8080)."""
    parser = argparse.ArgumentParser(
        prog="libapp", description="Serve the library API."
    )
    parser.parse_args(argv)

    _load_environment()
    port = os.environ.get("PORT") or DEFAULT_PORT

    try:
        engine = connect()
        config = load_config()
    except (ConnectionError, ConfigError) as exc:
        log.error("%s", exc)
        raise SystemExit(1) from exc

    container = Container(db=engine, config=config)
    modules = load_modules(container)
    app = new_server(modules)

    print(f"Starting server on :{port}")
    app.run(host="0.0.0.0", port=int(port))


if __name__ == "__main__":
    main()