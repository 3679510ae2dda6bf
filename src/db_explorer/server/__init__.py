"""HTTP server entry point."""

import argparse
import os

import uvicorn

from ..config import load_config


def main() -> None:
    """Start the DB explorer using uvicorn.

    Host and port come from the config file unless overridden on the command
    line. The config path is handed to the app factory through the
    ``DB_EXPLORER_CONFIG`` environment variable.
    """
    parser = argparse.ArgumentParser(description="Serve a relational schema as a REST API")
    parser.add_argument(
        "--config",
        default=os.environ.get("DB_EXPLORER_CONFIG", "config.yml"),
        help="Path to the YAML config file (default: $DB_EXPLORER_CONFIG or config.yml)",
    )
    parser.add_argument("--host", default=None, help="Interface to bind (default: from config)")
    parser.add_argument("--port", type=int, default=None, help="Port to bind (default: from config)")
    args = parser.parse_args()

    config = load_config(args.config)
    os.environ["DB_EXPLORER_CONFIG"] = args.config

    uvicorn.run(
        "db_explorer.server.app:create_app",
        factory=True,
        host=args.host or config.server.host,
        port=args.port or config.server.port,
    )
