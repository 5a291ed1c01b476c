"""Lookup of IPv4 locations in a QQwry (cz88) database."""

from __future__ import annotations

import ipaddress
import struct
from dataclasses import dataclass
from pathlib import Path

_INDEX_LEN = 7
_REDIRECT_MODE_1 = 0x01
_REDIRECT_MODE_2 = 0x02
_SUFFIX = " CZ88.NET"


@dataclass(frozen=True)
class Location:
    """Country and area text for an address."""

    country: str
    area: str


def _to_ipv4(query: str) -> int:
    try:
        address = ipaddress.ip_address(query)
    except ValueError as exc:
        raise ValueError("Query should be IPv4") from exc
    if isinstance(address, ipaddress.IPv6Address):
        mapped = address.ipv4_mapped
        if mapped is None:
            raise ValueError("Query should be IPv4")
        address = mapped
    return int(address)


def _decode(raw: bytes) -> str:
    return raw.decode("gbk", errors="replace").replace(_SUFFIX, "")


class QQwry:
    """An in-memory QQwry database."""

    def __init__(self, data: bytes) -> None:
        if len(data) < 8:
            raise ValueError("database is too short")
        self.data = bytes(data)
        start, end = struct.unpack_from("<II", self.data, 0)
        self.ip_num = (end - start) // _INDEX_LEN + 1

    @classmethod
    def from_file(cls, path: str | Path) -> QQwry:
        """Load a database from disk."""
        return cls(Path(path).read_bytes())

    def _read(self, offset: int, length: int) -> bytes:
        if offset < 0 or offset + length > len(self.data):
            raise ValueError("corrupt database: read past end")
        return self.data[offset : offset + length]

    def _byte(self, offset: int) -> int:
        return self._read(offset, 1)[0]

    def _uint24(self, offset: int) -> int:
        return int.from_bytes(self._read(offset, 3), "little")

    def _uint32(self, offset: int) -> int:
        return int.from_bytes(self._read(offset, 4), "little")

    def _string(self, offset: int) -> bytes:
        end = self.data.find(b"\0", offset)
        if offset >= len(self.data) or end < 0:
            raise ValueError("corrupt database: unterminated string")
        return self.data[offset:end]

    def _area(self, offset: int) -> bytes:
        mode = self._byte(offset)
        if mode in (_REDIRECT_MODE_1, _REDIRECT_MODE_2):
            area_offset = self._uint24(offset + 1)
            if area_offset == 0:
                return b""
            return self._string(area_offset)
        return self._string(offset)

    def _search_index(self, ip: int) -> int:
        start, end = struct.unpack_from("<II", self.data, 0)
        while True:
            records = ((end - start) // _INDEX_LEN) >> 1
            mid = start + records * _INDEX_LEN
            mid_ip = self._uint32(mid)
            if end - start == _INDEX_LEN:
                offset = self._uint24(mid + 4)
                if ip < self._uint32(mid + _INDEX_LEN):
                    return offset
                return 0
            if end <= start:
                return self._uint24(mid + 4) if ip == mid_ip else 0
            if mid_ip > ip:
                end = mid
            elif mid_ip < ip:
                start = mid
            else:
                return self._uint24(mid + 4)

    def find(self, query: str) -> Location:
        """Look up an IPv4 address; raises ValueError when it cannot be found."""
        ip = _to_ipv4(query)
        offset = self._search_index(ip)
        if offset <= 0:
            raise ValueError("Query not valid")

        mode = self._byte(offset + 4)
        if mode == _REDIRECT_MODE_1:
            country_offset = self._uint24(offset + 5)
            if self._byte(country_offset) == _REDIRECT_MODE_2:
                country = self._string(self._uint24(country_offset + 1))
                country_offset += 4
            else:
                country = self._string(country_offset)
                country_offset += len(country) + 1
            area = self._area(country_offset)
        elif mode == _REDIRECT_MODE_2:
            country = self._string(self._uint24(offset + 5))
            area = self._area(offset + 8)
        else:
            country = self._string(offset + 4)
            area = self._area(offset + 5 + len(country))

        return Location(country=_decode(country), area=_decode(area))