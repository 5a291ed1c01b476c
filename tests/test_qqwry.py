import ipaddress
import struct

import pytest

from zpscan.qqwry import Location, QQwry


def _ip(text):
    return int(ipaddress.IPv4Address(text)).to_bytes(4, "little")


def _u24(value):
    return value.to_bytes(3, "little")


STARTS = ["1.0.0.0", "2.0.0.0", "3.0.0.0", "4.0.0.0", "5.0.0.0"]


def build_database():
    body = bytearray(8)
    offsets = []

    offsets.append(len(body))
    body += _ip("1.255.255.255") + "中国".encode("gbk") + b"\0"
    body += "北京 CZ88.NET".encode("gbk") + b"\0"

    block_b = len(body)
    body += b"CountryB\0AreaB\0"
    offsets.append(len(body))
    body += _ip("2.255.255.255") + b"\x01" + _u24(block_b)

    country_c = len(body)
    body += b"CountryC\0"
    offsets.append(len(body))
    body += _ip("3.255.255.255") + b"\x02" + _u24(country_c) + b"AreaC\0"

    country_d = len(body)
    body += b"CountryD\0"
    area_d = len(body)
    body += b"AreaD\0"
    block_d = len(body)
    body += b"\x02" + _u24(country_d) + b"\x02" + _u24(area_d)
    offsets.append(len(body))
    body += _ip("4.255.255.255") + b"\x01" + _u24(block_d)

    offsets.append(len(body))
    body += _ip("5.255.255.255") + b"Last\0\0"

    index_start = len(body)
    for start, offset in zip(STARTS, offsets):
        body += _ip(start) + _u24(offset)
    index_end = len(body) - 7
    body[0:8] = struct.pack("<II", index_start, index_end)
    return bytes(body)


@pytest.fixture
def db():
    return QQwry(build_database())


def test_ip_num_counts_index_entries(db):
    assert db.ip_num == len(STARTS)


def test_plain_record_decodes_gbk_and_strips_suffix(db):
    assert db.find("1.2.3.4") == Location(country="中国", area="北京")


def test_redirect_mode_one(db):
    assert db.find("2.5.5.5") == Location(country="CountryB", area="AreaB")


def test_redirect_mode_two(db):
    assert db.find("3.1.1.1") == Location(country="CountryC", area="AreaC")


def test_exact_index_match(db):
    assert db.find("3.0.0.0").country == "CountryC"


def test_mode_one_to_mode_two_with_redirected_area(db):
    assert db.find("4.1.2.3") == Location(country="CountryD", area="AreaD")


def test_ipv4_mapped_ipv6_is_accepted(db):
    assert db.find("::ffff:2.5.5.5").country == "CountryB"


def test_beyond_last_range_is_not_valid(db):
    with pytest.raises(ValueError, match="Query not valid"):
        db.find("5.1.2.3")


@pytest.mark.parametrize("query", ["not-an-ip", "2001:db8::1"])
def test_non_ipv4_query_rejected(db, query):
    with pytest.raises(ValueError, match="IPv4"):
        db.find(query)


def test_from_file_round_trip(tmp_path):
    path = tmp_path / "qqwry.dat"
    path.write_bytes(build_database())
    loaded = QQwry.from_file(path)
    assert loaded.find("3.1.1.1").area == "AreaC"


def test_from_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        QQwry.from_file(tmp_path / "missing.dat")


def test_too_short_data_rejected():
    with pytest.raises(ValueError):
        QQwry(b"\x00\x01")