from __future__ import annotations

import socket
import threading

from loguru import logger

from dualstack_greeter.common import ListenerConfig


class ListenerSetupError(RuntimeError):
    """A fatal failure while preparing the listening socket."""

    def __init__(self, step: str, cause: OSError) -> None:
        super().__init__(f"{step} failed: {cause}")
        self.step = step
        self.cause = cause


def open_dual_stack_listener(config: ListenerConfig) -> socket.socket:
    """Create one IPv6 listener that also accepts IPv4-mapped connections.

    IPV6_V6ONLY has to be cleared after the socket exists and before bind();
    otherwise binding the IPv6 wildcard refuses IPv4 traffic. On any failure
    the half-built socket is closed and ``ListenerSetupError`` is raised.
    """
    try:
        server = socket.socket(socket.AF_INET6, socket.SOCK_STREAM)
    except OSError as exc:
        raise ListenerSetupError("socket", exc) from exc

    steps = (
        ("setsockopt SO_REUSEADDR", lambda: server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)),
        ("setsockopt IPV6_V6ONLY", lambda: server.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 0)),
        ("bind", lambda: server.bind(("::", config.port))),
        ("listen", lambda: server.listen(config.backlog)),
    )
    for step, action in steps:
        try:
            action()
        except OSError as exc:
            server.close()
            raise ListenerSetupError(step, exc) from exc

    return server


def greet(conn: socket.socket, greeting: bytes) -> None:
    """Write the greeting once and close. Nothing is ever read from the client."""
    with conn:
        logger.info("connection accepted")
        try:
            conn.sendall(greeting)
        except OSError as exc:
            logger.warning(f"greeting not delivered: {exc}")
        else:
            logger.info("data written")
    logger.info("connection closed")


def serve_forever(
    server: socket.socket,
    greeting: bytes,
    stop: threading.Event | None = None,
) -> None:
    """Accept and greet one connection at a time until ``stop`` is set."""
    while stop is None or not stop.is_set():
        try:
            conn, _addr = server.accept()
        except OSError as exc:
            if stop is not None and stop.is_set():
                return
            logger.error(f"accept: {exc}")
            continue
        greet(conn, greeting)


def run_greeter(config: ListenerConfig, stop: threading.Event | None = None) -> None:
    with open_dual_stack_listener(config) as server:
        logger.info(f"listening on port {server.getsockname()[1]}")
        serve_forever(server, config.greeting, stop)
