# mcpeek/pinglib/errors.py
"""Exceptions raised while resolving and querying a server.

Every failure surfaces as a QueryError subclass so the CLI can print one
line and exit non-zero. Cancelled is the exception: it is never printed.
"""


class QueryError(Exception):
    pass


class DecodeError(QueryError):
    """Malformed or truncated NBT server list."""

    def __init__(self, message, offset=None):
        if offset is not None:
            message = f"{message} (at byte {offset})"
        super().__init__(message)
        self.offset = offset


class AddressError(QueryError):
    pass


class InvalidPort(AddressError):
    pass


class EmptyHost(AddressError):
    pass


class ConnectError(QueryError):
    pass


class ProtocolError(QueryError):
    pass


class PingMismatch(ProtocolError):
    def __init__(self, expected, received):
        super().__init__(
            f"ping payload mismatch: sent {expected.hex()}, got {received.hex()}"
        )
        self.expected = expected
        self.received = received


class QueryTimeout(QueryError):
    pass


class Cancelled(QueryError):
    pass


class DirectoryNotFound(QueryError):
    pass
