"""Run the update server with uvicorn: ``python -m ota_api``."""

from __future__ import annotations

import argparse
import dataclasses
import logging
from pathlib import Path
from typing import Optional, Sequence

import uvicorn

from .app import create_app
from .logging_config import configure_root, uvicorn_log_level
from .settings import ServerSettings


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="ota-api", description="Serve OTA update manifests and assets.")
    parser.add_argument("--host", help="bind address (default: OTA_HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, help="bind port (default: OTA_PORT or 3000)")
    parser.add_argument("--updates-root", type=Path, help="directory holding published bundles")
    args = parser.parse_args(argv)

    level = configure_root()
    settings = ServerSettings.from_env()
    overrides = {
        key: value
        for key, value in (
            ("host", args.host),
            ("port", args.port),
            ("updates_root", args.updates_root),
        )
        if value is not None
    }
    if overrides:
        settings = dataclasses.replace(settings, **overrides)

    log = logging.getLogger("ota_api")
    log.info("Serving updates from %s on %s:%s", settings.updates_root, settings.host, settings.port)
    if settings.private_key_path is None:
        log.warning("No private key configured; signed requests will be rejected")

    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=uvicorn_log_level(level),
    )


if __name__ == "__main__":
    main()
