"""Command line entry point.

Usage:
    python -m querybridge [--config FILE] [--host HOST] [--port PORT] [--log-level LEVEL]
"""

import argparse
import sys
from typing import List, Optional

import uvicorn

from .api import create_app
from .config import load_config
from .core.exceptions import ConfigurationError
from .logging import configure_logging, get_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="querybridge",
        description="Run the QueryBridge HTTP server",
    )
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--host", help="Bind address (overrides configuration)")
    parser.add_argument("--port", type=int, help="Bind port (overrides configuration)")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Log level (overrides configuration)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Parse arguments, configure logging and serve until interrupted."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return 2

    if args.log_level:
        config = config.model_copy(
            update={"logging": config.logging.model_copy(update={"level": args.log_level})}
        )
    configure_logging(config.logging)

    host = args.host or config.server.host
    port = args.port or config.server.port
    get_logger("querybridge").info("Starting server", host=host, port=port)

    uvicorn.run(
        create_app(config),
        host=host,
        port=port,
        log_level=config.logging.level.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
