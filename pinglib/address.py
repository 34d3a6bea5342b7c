# mcpeek/pinglib/address.py
from dataclasses import dataclass
from typing import Optional

from pinglib.errors import EmptyHost, InvalidPort


@dataclass(frozen=True)
class Target:
    host: str
    port: Optional[int] = None

    def resolved_port(self, default):
        return default if self.port is None else self.port

    def __str__(self):
        return self.host if self.port is None else f"{self.host}:{self.port}"


def parse(s: str) -> Target:
    """Split `host[:port]` on the last colon.

    Bracketless IPv6 literals are not supported.
    """
    host, sep, port_str = s.strip().rpartition(":")
    if not sep:
        host, port = port_str, None
    else:
        if not port_str.isdigit() or not port_str.isascii():
            raise InvalidPort(f"could not parse port {port_str!r} as an integer")
        port = int(port_str)
        if port > 0xFFFF:
            raise InvalidPort(f"port {port} is out of range (0-65535)")
    if not host:
        raise EmptyHost(f"no host in address {s!r}")
    return Target(host=host, port=port)
