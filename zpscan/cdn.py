"""CDN detection for resolved addresses and wildcard DNS detection."""

from __future__ import annotations

import ipaddress
import socket
import uuid
from typing import Iterable


def ip_contains(cidr: str, ip: str) -> bool:
    """Tell whether an address lies inside a CIDR block; malformed input is False."""
    if "/" not in cidr:
        return False
    try:
        network = ipaddress.ip_network(cidr.strip(), strict=False)
        address = ipaddress.ip_address(ip.strip())
    except ValueError:
        return False
    if isinstance(address, ipaddress.IPv6Address) and network.version == 4:
        mapped = address.ipv4_mapped
        if mapped is None:
            return False
        address = mapped
    if address.version != network.version:
        return False
    return address in network


def check_cdn(
    ip: str, cname_data: Iterable[str] = (), ip_data: Iterable[str] = ()
) -> bool:
    """Tell whether a resolution answer points at a CDN.

    Answers holding a CNAME are checked against known CDN names; plain
    addresses are checked against known CDN address blocks.
    """
    if "CNAME" in ip:
        return any(name in ip for name in cname_data)
    return any(ip_contains(cidr, ip) for cidr in ip_data)


def check_wildcard(domain: str) -> bool:
    """Tell whether random subdomains of the domain resolve (wildcard DNS)."""
    for _ in range(2):
        try:
            socket.getaddrinfo(f"{uuid.uuid4()}.{domain}", None)
        except (OSError, UnicodeError):
            continue
        return True
    return False