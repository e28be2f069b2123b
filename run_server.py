#!/usr/bin/env python3
"""
Serve the DeepSearch API with uvicorn.

Host, port and worker count default to HOST, PORT and WEB_CONCURRENCY so the
same command works locally and in a container.
"""

import argparse
import os

import uvicorn
from dotenv import load_dotenv

from utils.logger import LoggerConfig, get_logger

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="DeepSearch API server")
    parser.add_argument("--host", default=os.getenv("HOST", "127.0.0.1"), help="Interface to bind")
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")), help="Port to bind")
    parser.add_argument(
        "--workers",
        type=int,
        default=int(os.getenv("WEB_CONCURRENCY", "1")),
        help="Worker processes; set REDIS_URL so they share rate limits",
    )
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (single worker)")
    return parser


def main(argv: list[str] | None = None) -> None:
    load_dotenv()
    LoggerConfig.setup_logging()
    args = build_parser().parse_args(argv)

    workers = 1 if args.reload else max(1, args.workers)
    if workers > 1 and not os.getenv("REDIS_URL"):
        logger.warning(
            "Multiple workers without REDIS_URL: each worker keeps its own rate-limit counters",
            extra={"extra_fields": {"workers": workers}},
        )

    uvicorn.run(
        "server.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        workers=workers,
        reload=args.reload,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    main()
