from __future__ import annotations

import argparse
import logging
from typing import Optional

import uvicorn

from idiombf.log import configure_logging

from .app import DEFAULT_STEP_LIMIT, MAX_TAPE_LENGTH, create_app

logger = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
    return number


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Serve the idiombf parse/run HTTP API")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port to listen on (default: 8000)")
    parser.add_argument(
        "--step-limit",
        type=_positive_int,
        default=DEFAULT_STEP_LIMIT,
        help=f"Upper bound on steps per run; requests may lower it (default: {DEFAULT_STEP_LIMIT})",
    )
    parser.add_argument(
        "--max-tape-length",
        type=_positive_int,
        default=MAX_TAPE_LENGTH,
        help=f"Largest tape a request may ask for (default: {MAX_TAPE_LENGTH})",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: $IDIOMBF_LOG_LEVEL or WARNING)",
    )
    args = parser.parse_args(argv)
    package_logger = configure_logging(args.log_level)

    app = create_app(step_limit=args.step_limit, max_tape_length=args.max_tape_length)
    logger.info(
        "Serving on %s:%d (step limit %d, max tape %d)",
        args.host,
        args.port,
        args.step_limit,
        args.max_tape_length,
    )
    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        log_level=logging.getLevelName(package_logger.level).lower(),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
