# mcpeek/pinglib/protocol.py
"""Server List Ping client (Minecraft Java Edition 1.7+).

One TCP connection carries the whole exchange:

    handshake (0x00, next_state=1)  ->
    status request (0x00)           ->  <- status response (0x00, JSON)
    ping (0x01, int64)              ->  <- pong (0x01, same int64)

Every packet is framed as [VarInt length][VarInt packet id][payload].
"""
import asyncio
import enum
import json
import struct
import time
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from pinglib.address import Target
from pinglib.config import DEFAULT_PORT, MAX_PACKET_LENGTH, PROTOCOL_VERSION
from pinglib.errors import ConnectError, PingMismatch, ProtocolError
from pinglib.logger import get_logger

log = get_logger("mcpeek.protocol")

HANDSHAKE_ID = 0x00
STATUS_ID = 0x00
PING_ID = 0x01
NEXT_STATE_STATUS = 1
VARINT_MAX_BYTES = 5


# --- Varint Helpers ---
def pack_varint(value: int) -> bytes:
    # Negative values go out as their 32-bit two's complement
    if value < 0:
        value += 1 << 32
    if not 0 <= value < 1 << 32:
        raise ValueError(f"{value} does not fit in a VarInt")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value != 0:
            byte |= 0x80
        out.append(byte)
        if value == 0:
            break
    return bytes(out)


def _finish_varint(number: int) -> int:
    number &= 0xFFFFFFFF
    if number & (1 << 31):
        number -= 1 << 32
    return number


def unpack_varint(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """Decode a VarInt from `data` at `offset`; returns (value, bytes consumed)."""
    number = 0
    for i in range(VARINT_MAX_BYTES):
        if offset + i >= len(data):
            raise ProtocolError("truncated VarInt")
        byte = data[offset + i]
        number |= (byte & 0x7F) << (7 * i)
        if not byte & 0x80:
            return _finish_varint(number), i + 1
    raise ProtocolError(f"VarInt longer than {VARINT_MAX_BYTES} bytes")


async def read_varint(reader: asyncio.StreamReader) -> int:
    number = 0
    for i in range(VARINT_MAX_BYTES):
        byte = (await _read_exactly(reader, 1))[0]
        number |= (byte & 0x7F) << (7 * i)
        if not byte & 0x80:
            return _finish_varint(number)
    raise ProtocolError(f"VarInt longer than {VARINT_MAX_BYTES} bytes")


def pack_string(value: str) -> bytes:
    encoded = value.encode("utf-8")
    return pack_varint(len(encoded)) + encoded


def unpack_string(data: bytes, offset: int = 0) -> Tuple[str, int]:
    size, consumed = unpack_varint(data, offset)
    start = offset + consumed
    if size < 0 or start + size > len(data):
        raise ProtocolError(f"string length {size} overruns packet")
    try:
        value = data[start:start + size].decode("utf-8")
    except UnicodeDecodeError as e:
        raise ProtocolError(f"string is not valid UTF-8: {e.reason}") from e
    return value, consumed + size


def build_packet(packet_id: int, payload: bytes = b"") -> bytes:
    body = pack_varint(packet_id) + payload
    return pack_varint(len(body)) + body


async def _read_exactly(reader, size):
    try:
        return await reader.readexactly(size)
    except asyncio.IncompleteReadError as e:
        raise ProtocolError("connection closed by server") from e
    except (ConnectionError, OSError) as e:
        raise ProtocolError(f"connection error: {e}") from e


async def read_packet(reader: asyncio.StreamReader) -> Tuple[int, bytes]:
    length = await read_varint(reader)
    if length <= 0 or length > MAX_PACKET_LENGTH:
        raise ProtocolError(f"invalid packet length {length}")
    body = await _read_exactly(reader, length)
    packet_id, consumed = unpack_varint(body)
    return packet_id, body[consumed:]


# --- Status document ---
@dataclass
class StatusResponse:
    players_online: int
    players_max: int
    sampled_names: List[str] = field(default_factory=list)


def parse_status(document: str) -> StatusResponse:
    """Reduce the status JSON to player counts and sampled names."""
    try:
        result = json.loads(document)
    except json.JSONDecodeError as e:
        raise ProtocolError(f"status response is not valid JSON: {e}") from e
    if not isinstance(result, dict):
        raise ProtocolError("status response is not a JSON object")

    players = result.get("players")
    if not isinstance(players, dict):
        raise ProtocolError("status response has no 'players' object")
    counts = {}
    for key in ("online", "max"):
        value = players.get(key)
        # bool is an int subclass; reject it explicitly
        if not isinstance(value, int) or isinstance(value, bool):
            raise ProtocolError(f"status response has no integer 'players.{key}'")
        counts[key] = value

    sample = players.get("sample")
    if sample is None:
        sample = []
    if not isinstance(sample, list):
        raise ProtocolError("'players.sample' is not a list")
    names = [p["name"] for p in sample if isinstance(p, dict) and isinstance(p.get("name"), str)]
    return StatusResponse(counts["online"], counts["max"], names)


# --- Client ---
class State(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    STATUS_SENT = "status sent"
    STATUS_RECEIVED = "status received"
    PINGED = "pinged"
    CLOSED = "closed"


class SLPClient:
    """One-shot status session. Phases must be driven in order."""

    def __init__(self, target: Target, protocol_version: int = PROTOCOL_VERSION):
        self.host = target.host
        self.port = target.resolved_port(DEFAULT_PORT)
        self.protocol_version = protocol_version
        self.state = State.DISCONNECTED
        self.pong_payload: Optional[int] = None
        self._reader = None
        self._writer = None

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, *exc_info):
        self.close()

    def _expect(self, state):
        if self.state is not state:
            raise ProtocolError(f"cannot continue from state '{self.state.value}', expected '{state.value}'")

    def _fail(self, error):
        log.debug(f"{self.host}:{self.port}: session failed in state '{self.state.value}': {error}")
        self.close()
        return error

    async def connect(self):
        self._expect(State.DISCONNECTED)
        log.debug(f"Connecting to {self.host}:{self.port}")
        try:
            self._reader, self._writer = await asyncio.open_connection(self.host, self.port)
        except (OSError, UnicodeError) as e:
            self.state = State.CLOSED
            raise ConnectError(f"could not connect to {self.host}:{self.port}: {e}") from e
        self.state = State.CONNECTED

    async def _send(self, packet):
        try:
            self._writer.write(packet)
            await self._writer.drain()
        except (ConnectionError, OSError) as e:
            raise self._fail(ProtocolError(f"connection error: {e}")) from e

    async def _receive(self, expected_id):
        try:
            packet_id, payload = await read_packet(self._reader)
        except ProtocolError as e:
            raise self._fail(e)
        if packet_id != expected_id:
            raise self._fail(ProtocolError(f"unexpected packet id {packet_id:#x}, expected {expected_id:#x}"))
        return payload

    async def handshake(self):
        """Send the handshake and the status request in one go."""
        self._expect(State.CONNECTED)
        packet = bytearray()
        packet += pack_varint(self.protocol_version)
        packet += pack_string(self.host)
        packet += struct.pack(">H", self.port)
        packet += pack_varint(NEXT_STATE_STATUS)
        await self._send(build_packet(HANDSHAKE_ID, bytes(packet)) + build_packet(STATUS_ID))
        self.state = State.STATUS_SENT

    async def status(self) -> StatusResponse:
        if self.state is State.CONNECTED:
            await self.handshake()
        self._expect(State.STATUS_SENT)
        payload = await self._receive(STATUS_ID)
        try:
            document, consumed = unpack_string(payload)
            if consumed != len(payload):
                raise ProtocolError(f"{len(payload) - consumed} trailing bytes after status JSON")
            status = parse_status(document)
        except ProtocolError as e:
            raise self._fail(e)
        self.state = State.STATUS_RECEIVED
        log.debug(f"{self.host}:{self.port}: {status.players_online}/{status.players_max} online")
        return status

    async def ping(self, payload: int) -> float:
        """Send `payload` and check the echo; returns the round trip in ms."""
        self._expect(State.STATUS_RECEIVED)
        sent = struct.pack(">q", payload)
        start = time.monotonic()
        await self._send(build_packet(PING_ID, sent))
        received = await self._receive(PING_ID)
        latency = (time.monotonic() - start) * 1000
        self.state = State.PINGED
        if received != sent:
            raise self._fail(PingMismatch(sent, received))
        self.pong_payload = payload
        log.debug(f"{self.host}:{self.port}: pong in {latency:.1f}ms")
        return latency

    def close(self):
        if self._writer is not None:
            self._writer.close()
            self._writer = None
        self.state = State.CLOSED
