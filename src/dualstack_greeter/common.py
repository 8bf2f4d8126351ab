from __future__ import annotations

import re
from dataclasses import dataclass

DEFAULT_PORT = 1848
DEFAULT_BACKLOG = 3
GREETING = b"hello\n"

_LEADING_INT = re.compile(r"\s*([+-]?)(\d+)", re.ASCII)


@dataclass(frozen=True)
class ListenerConfig:
    port: int = DEFAULT_PORT
    backlog: int = DEFAULT_BACKLOG
    greeting: bytes = GREETING


def parse_port(value: str | None) -> int:
    """Resolve the port argument the way ``atoi`` + ``htons`` would.

    Leading ASCII whitespace and an optional sign are accepted, trailing
    garbage is ignored, and no ASCII digits at all yields 0. The result is
    truncated to 16 bits, so ``"-1"`` becomes 65535 and ``"65536"`` becomes 0.
    """
    if value is None:
        return DEFAULT_PORT

    match = _LEADING_INT.match(value)
    if match is None:
        return 0
    sign, digits = match.groups()
    # 10**16 is a multiple of 2**16, so only the last 16 digits affect the port.
    number = int(digits[-16:])
    return (-number if sign == "-" else number) & 0xFFFF
