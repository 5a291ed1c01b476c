"""Expansion of IP addresses, CIDR blocks and dash ranges into host lists."""

from __future__ import annotations

import ipaddress
import re

_INTEGER = re.compile(r"[+-]?[0-9]+")


def _atoi(text: str) -> int | None:
    """Parse a decimal integer, returning None when the text is not one."""
    if _INTEGER.fullmatch(text) is None:
        return None
    return int(text)


def _is_ip(text: str) -> bool:
    if "%" in text:
        return False
    try:
        ipaddress.ip_address(text)
    except ValueError:
        return False
    return True


def parse_ip(ip: str) -> list[str]:
    """Expand a single address, a CIDR block or a dash range into addresses.

    Raises ValueError for a malformed CIDR block; other malformed input
    yields an empty list.
    """
    if "/" in ip:
        _, _, prefix = ip.partition("/")
        if _INTEGER.fullmatch(prefix) is None or prefix[0] in "+-":
            raise ValueError(f"invalid CIDR address: {ip}")
        try:
            network = ipaddress.ip_network(ip, strict=False)
        except ValueError as exc:
            raise ValueError(f"invalid CIDR address: {ip}") from exc
        return expand_range(ip_range(network))
    if "-" in ip:
        return expand_range(ip)
    return [ip] if _is_ip(ip) else []


def ip_range(network: ipaddress.IPv4Network | ipaddress.IPv6Network | str) -> str:
    """Render a network as ``first-last`` (network address to broadcast address)."""
    if isinstance(network, str):
        network = ipaddress.ip_network(network, strict=False)
    return f"{network.network_address}-{network.broadcast_address}"


def expand_range(spec: str) -> list[str]:
    """Expand ``a.b.c.d-e`` or ``a.b.c.d-w.x.y.z`` into every address it covers.

    Each octet of the start must not exceed the matching octet of the end;
    anything malformed yields an empty list.
    """
    parts = spec.split("-")
    if len(parts) < 2:
        return []
    start_text, end_text = parts[0], parts[1]

    if len(end_text) < 4:
        last = _atoi(end_text)
        if not _is_ip(start_text) or last is None or last > 255:
            return []
        octets = start_text.split(".")
        if len(octets) != 4:
            return []
        first = _atoi(octets[3])
        if first is None or first > last:
            return []
        prefix = ".".join(octets[:3])
        return [f"{prefix}.{value}" for value in range(first, last + 1)]

    start_octets = start_text.split(".")
    end_octets = end_text.split(".")
    if len(start_octets) != 4 or len(end_octets) != 4:
        return []
    start: list[int] = []
    end: list[int] = []
    for low_text, high_text in zip(start_octets, end_octets):
        low, high = _atoi(low_text), _atoi(high_text)
        if low is None or high is None or low > high:
            return []
        start.append(low)
        end.append(high)

    start_num = start[0] << 24 | start[1] << 16 | start[2] << 8 | start[3]
    end_num = end[0] << 24 | end[1] << 16 | end[2] << 8 | end[3]
    return [
        ".".join(str((num >> shift) & 0xFF) for shift in (24, 16, 8, 0))
        for num in range(start_num, end_num + 1)
    ]