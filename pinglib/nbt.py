# mcpeek/pinglib/nbt.py
"""Decoder for the NBT server list (servers.dat).

Only compound, list and string tags are materialized. Everything else
(icons, flags, resource pack settings) is skipped in place so unknown
per-server fields never break decoding. Every length read from the file
is bounds-checked before it is used.
"""
import gzip
import struct
import zlib
from dataclasses import dataclass

from pinglib.errors import DecodeError
from pinglib.logger import get_logger

log = get_logger("mcpeek.nbt")

TAG_END = 0
TAG_BYTE = 1
TAG_SHORT = 2
TAG_INT = 3
TAG_LONG = 4
TAG_FLOAT = 5
TAG_DOUBLE = 6
TAG_BYTE_ARRAY = 7
TAG_STRING = 8
TAG_LIST = 9
TAG_COMPOUND = 10
TAG_INT_ARRAY = 11
TAG_LONG_ARRAY = 12

# Fixed payload sizes for scalar tags
_SCALAR_SIZES = {
    TAG_BYTE: 1,
    TAG_SHORT: 2,
    TAG_INT: 4,
    TAG_LONG: 8,
    TAG_FLOAT: 4,
    TAG_DOUBLE: 8,
}

# Element sizes for the array tags
_ARRAY_SIZES = {
    TAG_BYTE_ARRAY: 1,
    TAG_INT_ARRAY: 4,
    TAG_LONG_ARRAY: 8,
}

MAX_DEPTH = 512
GZIP_MAGIC = b"\x1f\x8b"


@dataclass(frozen=True)
class ServerEntry:
    name: str
    address: str

    @property
    def label(self):
        return f"{self.name} (address: {self.address})"


class _Reader:
    """Cursor over the raw bytes; every read checks the remaining length."""

    def __init__(self, data):
        self.data = data
        self.pos = 0

    def take(self, size, what):
        if size < 0:
            raise DecodeError(f"negative length for {what}", self.pos)
        end = self.pos + size
        if end > len(self.data):
            raise DecodeError(
                f"truncated input reading {what}: need {size} bytes, "
                f"{len(self.data) - self.pos} left",
                self.pos,
            )
        chunk = self.data[self.pos:end]
        self.pos = end
        return chunk

    def skip(self, size, what):
        self.take(size, what)

    def tag_type(self):
        return self.take(1, "tag type")[0]

    def length_u16(self, what):
        return struct.unpack(">H", self.take(2, what))[0]

    def length_i32(self, what):
        offset = self.pos
        value = struct.unpack(">i", self.take(4, what))[0]
        if value < 0:
            raise DecodeError(f"negative {what} {value}", offset)
        return value

    def string(self):
        size = self.length_u16("string length")
        offset = self.pos
        raw = self.take(size, "string")
        return _decode_modified_utf8(raw, offset)


def _decode_modified_utf8(raw, offset):
    # Java's modified UTF-8 writes NUL as an overlong C0 80 and
    # supplementary characters as two 3-byte surrogates; rejoin the pairs
    try:
        text = raw.replace(b"\xc0\x80", b"\x00").decode("utf-8", "surrogatepass")
        return text.encode("utf-16-be", "surrogatepass").decode("utf-16-be")
    except UnicodeDecodeError as e:
        raise DecodeError(f"invalid string encoding: {e.reason}", offset) from e


def _skip_payload(reader, tag, depth):
    if depth > MAX_DEPTH:
        raise DecodeError("tags nested too deeply", reader.pos)
    if tag in _SCALAR_SIZES:
        reader.skip(_SCALAR_SIZES[tag], "scalar tag")
    elif tag in _ARRAY_SIZES:
        count = reader.length_i32("array length")
        reader.skip(count * _ARRAY_SIZES[tag], "array tag")
    elif tag == TAG_STRING:
        reader.skip(reader.length_u16("string length"), "string")
    elif tag == TAG_LIST:
        offset = reader.pos
        element = reader.tag_type()
        count = reader.length_i32("list length")
        if element == TAG_END and count:
            raise DecodeError("non-empty list of end tags", offset)
        for _ in range(count):
            _skip_payload(reader, element, depth + 1)
    elif tag == TAG_COMPOUND:
        while True:
            child = reader.tag_type()
            if child == TAG_END:
                break
            reader.skip(reader.length_u16("tag name length"), "tag name")
            _skip_payload(reader, child, depth + 1)
    else:
        raise DecodeError(f"unknown tag type {tag}", reader.pos - 1)


def _read_server(reader, index):
    fields = {}
    while True:
        offset = reader.pos
        tag = reader.tag_type()
        if tag == TAG_END:
            break
        key = reader.string()
        if key in ("name", "ip"):
            if tag != TAG_STRING:
                raise DecodeError(
                    f"server {index}: field '{key}' has tag type {tag}, expected string",
                    offset,
                )
            fields[key] = reader.string()
        else:
            _skip_payload(reader, tag, 2)
    for key in ("name", "ip"):
        if key not in fields:
            raise DecodeError(f"server {index}: missing '{key}' field", reader.pos)
    return ServerEntry(name=fields["name"], address=fields["ip"])


def _read_servers(reader):
    offset = reader.pos
    element = reader.tag_type()
    count = reader.length_i32("servers list length")
    if count and element != TAG_COMPOUND:
        raise DecodeError(
            f"'servers' holds tag type {element}, expected compound", offset
        )
    return [_read_server(reader, i) for i in range(count)]


def decode(data):
    """Decode a servers.dat document into its entries, in file order."""
    data = bytes(data)
    if data[:2] == GZIP_MAGIC:
        try:
            data = gzip.decompress(data)
        except (OSError, EOFError, zlib.error) as e:
            raise DecodeError(f"corrupt gzip stream: {e}") from e

    reader = _Reader(data)
    if reader.tag_type() != TAG_COMPOUND:
        raise DecodeError("root tag is not a compound", 0)
    reader.string() # root name, usually empty

    servers = None
    while True:
        offset = reader.pos
        tag = reader.tag_type()
        if tag == TAG_END:
            break
        key = reader.string()
        if key == "servers":
            if tag != TAG_LIST:
                raise DecodeError(f"'servers' has tag type {tag}, expected list", offset)
            servers = _read_servers(reader)
        else:
            _skip_payload(reader, tag, 1)

    if servers is None:
        raise DecodeError("missing 'servers' list")
    log.debug(f"Decoded {len(servers)} servers ({len(data)} bytes)")
    return servers


def load(path):
    """Read and decode the server list at `path`."""
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise DecodeError(f"could not open servers file at {path}: {e.strerror}") from e
    return decode(data)
