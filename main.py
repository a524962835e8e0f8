"""
Entrypoint for the Copydesk backend.
This file wires the FastAPI application together by importing the core package,
which initializes shared state and registers all routes.
"""

from __future__ import annotations

import argparse
import os

import core  # noqa: F401  # Ensure route modules are imported for side effects
from core.app_state import app, config, logger  # noqa: F401


if __name__ == "__main__":
    import uvicorn

    parser = argparse.ArgumentParser(description="Copydesk AI editing backend")
    parser.add_argument("--host", default=config.APP_HOST, help="Bind address")
    parser.add_argument("--port", type=int, default=config.APP_PORT, help="Bind port")
    parser.add_argument(
        "--no-reload",
        action="store_true",
        help="Disable auto-reload even if APP_RELOAD is set",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Verbose phase logs for every request",
    )
    parser.add_argument(
        "--extra-verbose",
        action="store_true",
        help="Also log full prompts and responses (includes --verbose)",
    )
    args = parser.parse_args()

    # Environment so that reload workers pick the flags up as well
    if args.extra_verbose:
        os.environ["COPYDESK_EXTRA_VERBOSE"] = "true"
        os.environ["COPYDESK_VERBOSE"] = "true"
    elif args.verbose:
        os.environ["COPYDESK_VERBOSE"] = "true"
    config.load_from_environment()

    reload = config.APP_RELOAD and not args.no_reload
    logger.info("Starting Copydesk on %s:%d (reload=%s)", args.host, args.port, reload)
    uvicorn.run(
        "main:app",
        host=args.host,
        port=args.port,
        reload=reload,
    )
