import gzip
import struct

import pytest

from conftest import named, nbt_string, server_compound, servers_dat
from pinglib import nbt
from pinglib.errors import DecodeError


class TestDecode:
    def test_entries_in_file_order(self, sample_entries):
        servers = nbt.decode(servers_dat(sample_entries))
        assert [(s.name, s.address) for s in servers] == sample_entries

    def test_empty_server_list(self):
        data = named(10, "", named(9, "servers", b"\x00" + struct.pack(">i", 0)) + b"\x00")
        assert nbt.decode(data) == []

    def test_gzip_compressed(self, sample_entries):
        servers = nbt.decode(gzip.compress(servers_dat(sample_entries)))
        assert len(servers) == 3

    def test_corrupt_gzip(self, sample_entries):
        data = gzip.compress(servers_dat(sample_entries))[:-6]
        with pytest.raises(DecodeError):
            nbt.decode(data)

    def test_skips_unknown_fields(self):
        extra = (
            named(2, "short", b"\x00\x01")
            + named(11, "ints", struct.pack(">ii", 1, 7))
            + named(12, "longs", struct.pack(">iq", 1, 7))
            + named(9, "tags", b"\x08" + struct.pack(">i", 2) + nbt_string("a") + nbt_string("b"))
            + named(10, "nested", named(6, "d", struct.pack(">d", 1.5)) + b"\x00")
        )
        entry = extra + server_compound("Nested", "nested.example.com")
        servers = named(9, "servers", b"\x0a" + struct.pack(">i", 1) + entry)
        data = named(10, "", named(8, "before", nbt_string("x")) + servers + b"\x00")
        assert nbt.decode(data)[0].address == "nested.example.com"

    def test_modified_utf8_null(self):
        raw = b"a\xc0\x80b"
        entry = named(8, "name", struct.pack(">H", len(raw)) + raw) + named(8, "ip", nbt_string("h")) + b"\x00"
        data = named(10, "", named(9, "servers", b"\x0a" + struct.pack(">i", 1) + entry) + b"\x00")
        assert nbt.decode(data)[0].name == "a\x00b"

    @pytest.mark.parametrize("raw", [
        b"Fun \xed\xa0\xbd\xed\xb8\x80",  # Java writes U+1F600 as a surrogate pair
        b"Fun \xf0\x9f\x98\x80",
    ])
    def test_supplementary_characters(self, raw):
        entry = named(8, "name", struct.pack(">H", len(raw)) + raw) + named(8, "ip", nbt_string("h")) + b"\x00"
        data = named(10, "", named(9, "servers", b"\x0a" + struct.pack(">i", 1) + entry) + b"\x00")
        assert nbt.decode(data)[0].name == "Fun \U0001F600"

    def test_label(self):
        entry = nbt.ServerEntry("Hub", "hub.example.com:25570")
        assert entry.label == "Hub (address: hub.example.com:25570)"


class TestDecodeErrors:
    def test_every_truncation_fails(self, sample_entries):
        data = servers_dat(sample_entries)
        for end in range(len(data)):
            with pytest.raises(DecodeError):
                nbt.decode(data[:end])

    def test_root_must_be_compound(self):
        with pytest.raises(DecodeError, match="root tag"):
            nbt.decode(named(8, "", nbt_string("x")))

    def test_missing_servers(self):
        with pytest.raises(DecodeError, match="missing 'servers'"):
            nbt.decode(named(10, "", b"\x00"))

    def test_servers_wrong_type(self):
        with pytest.raises(DecodeError, match="expected list"):
            nbt.decode(named(10, "", named(8, "servers", nbt_string("x")) + b"\x00"))

    def test_missing_ip(self):
        entry = named(8, "name", nbt_string("No IP")) + b"\x00"
        data = named(10, "", named(9, "servers", b"\x0a" + struct.pack(">i", 1) + entry) + b"\x00")
        with pytest.raises(DecodeError, match="missing 'ip'"):
            nbt.decode(data)

    def test_name_wrong_type(self):
        entry = named(3, "name", struct.pack(">i", 5)) + named(8, "ip", nbt_string("h")) + b"\x00"
        data = named(10, "", named(9, "servers", b"\x0a" + struct.pack(">i", 1) + entry) + b"\x00")
        with pytest.raises(DecodeError, match="field 'name'"):
            nbt.decode(data)

    def test_huge_list_length(self):
        data = named(10, "", named(9, "servers", b"\x0a" + struct.pack(">i", 0x7FFFFFFF)))
        with pytest.raises(DecodeError):
            nbt.decode(data)

    def test_negative_array_length(self):
        entry = named(7, "icon", struct.pack(">i", -1)) + b"\x00"
        data = named(10, "", named(9, "servers", b"\x0a" + struct.pack(">i", 1) + entry) + b"\x00")
        with pytest.raises(DecodeError, match="negative"):
            nbt.decode(data)

    def test_lone_surrogate(self):
        raw = b"\xed\xa0\xbd"
        entry = named(8, "name", struct.pack(">H", len(raw)) + raw) + named(8, "ip", nbt_string("h")) + b"\x00"
        data = named(10, "", named(9, "servers", b"\x0a" + struct.pack(">i", 1) + entry) + b"\x00")
        with pytest.raises(DecodeError, match="invalid string encoding"):
            nbt.decode(data)

    def test_error_carries_offset(self):
        with pytest.raises(DecodeError) as e:
            nbt.decode(b"\x0a\x00\x00")
        assert e.value.offset == 3

    def test_unknown_tag(self):
        data = named(10, "", named(42, "odd", b"") + b"\x00")
        with pytest.raises(DecodeError, match="unknown tag type 42"):
            nbt.decode(data)

    def test_too_deep(self):
        nested = b"\x09" + struct.pack(">i", 1)
        data = named(10, "", named(9, "deep", nested * 600 + b"\x00" + struct.pack(">i", 0)) + b"\x00")
        with pytest.raises(DecodeError, match="nested too deeply"):
            nbt.decode(data)


class TestLoad:
    def test_load(self, tmp_path, sample_entries):
        path = tmp_path / "servers.dat"
        path.write_bytes(servers_dat(sample_entries))
        assert [s.name for s in nbt.load(path)] == ["My Server", "Local", "Friends"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(DecodeError, match="could not open servers file"):
            nbt.load(tmp_path / "nope.dat")
