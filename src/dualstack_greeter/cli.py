from __future__ import annotations

import argparse
import os

from loguru import logger

from dualstack_greeter.common import DEFAULT_BACKLOG, DEFAULT_PORT, ListenerConfig, parse_port
from dualstack_greeter.logs import configure_logging
from dualstack_greeter.server import ListenerSetupError, run_greeter

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dualstack-greeter",
        description=(
            "Listen on one dual-stack TCP socket (IPv4 and IPv6), send 'hello' to every "
            "client and close the connection."
        ),
    )
    # Kept as a string: a non-numeric value parses to 0 instead of being rejected.
    parser.add_argument("port", nargs="?", default=None, help=f"TCP port to listen on (default: {DEFAULT_PORT})")
    parser.add_argument("--backlog", type=int, default=DEFAULT_BACKLOG, help="Pending connection queue depth")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=os.environ.get("GREETER_LOG_LEVEL", "INFO"),
        help="Console log level (default: $GREETER_LOG_LEVEL or INFO)",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> ListenerConfig:
    return ListenerConfig(port=parse_port(args.port), backlog=args.backlog)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    # Defaults, including $GREETER_LOG_LEVEL, bypass the choices check.
    if args.log_level not in LOG_LEVELS:
        parser.error(f"unknown log level {args.log_level!r} (choose from {', '.join(LOG_LEVELS)})")
    configure_logging(args.log_level)

    try:
        run_greeter(config_from_args(args))
    except ListenerSetupError as exc:
        logger.error(str(exc))
        return 1
    except KeyboardInterrupt:
        logger.info("interrupted, shutting down")
        return 0
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
