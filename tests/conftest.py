import asyncio
import json
import socket
import struct
import threading

import pytest

from pinglib.protocol import build_packet, pack_string, read_packet, unpack_varint

STATUS = {
    "version": {"name": "1.20.4", "protocol": 765},
    "players": {
        "online": 3,
        "max": 20,
        "sample": [
            {"name": "Alice", "id": "4566e69f-c907-48ee-8d71-d7ba5aa00d20"},
            {"name": "Bob", "id": "d0e05de7-6067-454d-beae-c6d19d886191"},
        ],
    },
    "description": {"text": "A Minecraft Server"},
}


# --- NBT builders ---
def nbt_string(value):
    encoded = value.encode("utf-8")
    return struct.pack(">H", len(encoded)) + encoded


def named(tag, name, payload):
    return bytes([tag]) + nbt_string(name) + payload


def server_compound(name, ip, icon=b"\x89PNG"):
    body = b""
    if icon is not None:
        body += named(7, "icon", struct.pack(">i", len(icon)) + icon)
    body += named(8, "name", nbt_string(name))
    body += named(8, "ip", nbt_string(ip))
    body += named(1, "acceptTextures", b"\x01")
    return body + b"\x00"


def servers_dat(entries):
    servers = b"".join(server_compound(name, ip) for name, ip in entries)
    servers_list = named(9, "servers", bytes([10]) + struct.pack(">i", len(entries)) + servers)
    return named(10, "", servers_list + b"\x00")


@pytest.fixture
def sample_entries():
    return [("My Server", "mc.example.com"), ("Local", "127.0.0.1:25566"), ("Friends", "play.friends.net")]


# --- Fake servers ---
async def serve_status(reader, writer, document=None, pong=None, received=None):
    """Answer one status session; `pong` replaces the echoed ping payload."""
    handshake = await read_packet(reader)
    if received is not None:
        received.append(handshake)
    await read_packet(reader)  # status request
    if document is None:
        document = json.dumps(STATUS)
    writer.write(build_packet(0x00, pack_string(document)))
    await writer.drain()
    packet_id, payload = await read_packet(reader)
    writer.write(build_packet(packet_id, payload if pong is None else pong))
    await writer.drain()
    writer.close()


async def start_fake_server(handler):
    server = await asyncio.start_server(handler, "127.0.0.1", 0)
    return server, server.sockets[0].getsockname()[1]


def _read_frame(stream):
    raw = b""
    while True:
        byte = stream.read(1)
        if not byte:
            raise EOFError
        raw += byte
        if not byte[0] & 0x80:
            break
    length, _ = unpack_varint(raw)
    body = stream.read(length)
    packet_id, consumed = unpack_varint(body)
    return packet_id, body[consumed:]


@pytest.fixture
def threaded_server():
    """Blocking one-shot status server for code that runs its own event loop."""
    sock = socket.socket()
    sock.bind(("127.0.0.1", 0))
    sock.listen(1)

    def handle():
        conn, _ = sock.accept()
        with conn, conn.makefile("rb") as stream:
            _read_frame(stream)
            _read_frame(stream)
            conn.sendall(build_packet(0x00, pack_string(json.dumps(STATUS))))
            packet_id, payload = _read_frame(stream)
            conn.sendall(build_packet(packet_id, payload))

    thread = threading.Thread(target=handle, daemon=True)
    thread.start()
    yield sock.getsockname()[1]
    sock.close()
    thread.join(timeout=1)
