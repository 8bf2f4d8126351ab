from __future__ import annotations

import socket
import threading

import pytest
from loguru import logger

from dualstack_greeter.common import ListenerConfig
from dualstack_greeter.server import open_dual_stack_listener, serve_forever


def _ipv6_loopback_available() -> bool:
    if not socket.has_ipv6:
        return False
    try:
        with socket.socket(socket.AF_INET6, socket.SOCK_STREAM) as probe:
            probe.bind(("::1", 0))
    except OSError:
        return False
    return True


HAS_IPV6 = _ipv6_loopback_available()

requires_ipv6 = pytest.mark.skipif(not HAS_IPV6, reason="IPv6 loopback is not available")


def read_until_closed(host: str, port: int, timeout: float = 5.0) -> bytes:
    with socket.create_connection((host, port), timeout=timeout) as client:
        return drain(client)


def drain(client: socket.socket) -> bytes:
    chunks = []
    while True:
        data = client.recv(4096)
        if not data:
            return b"".join(chunks)
        chunks.append(data)


@pytest.fixture
def log_messages():
    messages: list[str] = []
    sink_id = logger.add(messages.append, level="DEBUG", format="{level}|{message}")
    yield messages
    logger.remove(sink_id)


@pytest.fixture
def greeter_port():
    """A dual-stack greeter on an ephemeral port, served from a background thread."""
    if not HAS_IPV6:
        pytest.skip("IPv6 loopback is not available")

    server = open_dual_stack_listener(ListenerConfig(port=0))
    port = server.getsockname()[1]
    stop = threading.Event()
    worker = threading.Thread(target=serve_forever, args=(server, b"hello\n", stop), daemon=True)
    worker.start()

    yield port

    stop.set()
    # Wake the blocking accept() so the loop sees the stop flag.
    try:
        read_until_closed("127.0.0.1", port, timeout=1.0)
    except OSError:
        pass
    worker.join(timeout=5)
    server.close()
