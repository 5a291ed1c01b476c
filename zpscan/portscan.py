"""Service identification of open ports with nmap probes."""

from __future__ import annotations

import logging
import socket
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Mapping, Sequence

from zpscan.portprobe import NmapProbe, Probe

log = logging.getLogger(__name__)

_READ_SIZE = 1024
_ENGINE_WORKERS = 200


@dataclass
class PortResult:
    """The service identified on one address."""

    addr: str
    service_name: str = ""
    probe_name: str = ""
    vendor_product: str = ""
    version: str = ""


def _address(host: str, port: str | int) -> str:
    return f"{host}:{port}"


def _split_address(address: str) -> tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"missing port in address {address!r}")
    return host.strip("[]"), int(port)


def _recv_exact(conn: socket.socket, size: int) -> bytes:
    data = b""
    while len(data) < size:
        chunk = conn.recv(size - len(data))
        if not chunk:
            raise ConnectionError("proxy closed the connection")
        data += chunk
    return data


def _socks5_connect(proxy: str, address: str, timeout: float) -> socket.socket:
    proxy_host, proxy_port = _split_address(proxy)
    host, port = _split_address(address)
    conn = socket.create_connection((proxy_host, proxy_port), timeout=timeout)
    try:
        conn.sendall(b"\x05\x01\x00")
        if _recv_exact(conn, 2) != b"\x05\x00":
            raise ConnectionError("SOCKS5 proxy refused the handshake")
        encoded = host.encode("idna")
        conn.sendall(
            b"\x05\x01\x00\x03"
            + bytes([len(encoded)])
            + encoded
            + port.to_bytes(2, "big")
        )
        head = _recv_exact(conn, 4)
        if head[1] != 0:
            raise ConnectionError(f"SOCKS5 connect failed with code {head[1]}")
        kind = head[3]
        if kind == 0x01:
            _recv_exact(conn, 4 + 2)
        elif kind == 0x04:
            _recv_exact(conn, 16 + 2)
        elif kind == 0x03:
            length = _recv_exact(conn, 1)[0]
            _recv_exact(conn, length + 2)
        else:
            raise ConnectionError("SOCKS5 proxy sent an unknown address type")
    except BaseException:
        conn.close()
        raise
    return conn


def _open(address: str, proxy: str, timeout: float) -> socket.socket:
    if proxy:
        return _socks5_connect(proxy, address, timeout)
    return socket.create_connection(_split_address(address), timeout=timeout)


def classify_probes(nmap: NmapProbe, port: str | int) -> list[list[Probe]]:
    """Order probes into tiers: default-port, rarity 1, rarity below 6, the rest."""
    port = str(port)
    default: list[Probe] = []
    common: list[Probe] = []
    uncommon: list[Probe] = []
    rare: list[Probe] = []
    for probe in nmap.probes:
        if port in probe.ports:
            default.append(probe)
        elif probe.rarity == 1:
            common.append(probe)
        elif probe.rarity < 6:
            uncommon.append(probe)
        else:
            rare.append(probe)
    return [default, common, uncommon, rare]


def grab_response(
    probe: Probe, address: str, proxy: str = "", timeout: float = 5
) -> bytes:
    """Connect, send the probe payload and read until the peer stops talking.

    Raises OSError when nothing at all could be read.
    """
    with _open(address, proxy, timeout) as conn:
        conn.settimeout(timeout)
        if probe.data:
            conn.sendall(probe.data)
        log.debug("req data: %r", probe.data)
        deadline = time.monotonic() + timeout
        chunks: list[bytes] = []
        while True:
            remaining = deadline - time.monotonic()
            try:
                if remaining <= 0:
                    raise TimeoutError("read deadline exceeded")
                conn.settimeout(remaining)
                chunk = conn.recv(_READ_SIZE)
            except OSError:
                if chunks:
                    break
                raise
            if not chunk:
                if chunks:
                    break
                raise ConnectionError("connection closed without data")
            chunks.append(chunk)
    response = b"".join(chunks)
    log.debug("resp data: %r", response)
    return response


def _identify(
    nmap: NmapProbe, probe: Probe, address: str, proxy: str, timeout: float
) -> PortResult | None:
    try:
        response = grab_response(probe, address, proxy, timeout)
    except (OSError, ValueError):
        return None
    extras = nmap.match_response(response, probe.matches, probe.fallback)
    if extras is None:
        return None
    return PortResult(
        addr=address,
        service_name=extras.service_name,
        probe_name=probe.name,
        vendor_product=extras.vendor_product,
        version=extras.version,
    )


def scan_with_probe(
    nmap: NmapProbe,
    host: str,
    port: str | int,
    proxy: str = "",
    timeout: float = 5,
) -> PortResult:
    """Identify the service on one port, trying probe tiers in order."""
    address = _address(host, port)
    for tier in classify_probes(nmap, port):
        if not tier:
            continue
        with ThreadPoolExecutor(max_workers=len(tier)) as pool:
            futures = [
                pool.submit(_identify, nmap, probe, address, proxy, timeout)
                for probe in tier
            ]
            found = [future.result() for future in as_completed(futures)]
        for result in found:
            if result is not None:
                log.debug("fingerprint found: %s %s", address, result.service_name)
                return result
    log.debug("unknown service: %s", address)
    return PortResult(addr=address)


@dataclass
class Engine:
    """Runs service identification over many hosts and ports."""

    scanner: NmapProbe
    proxy: str = ""
    timeout: float = 5

    def run(self, targets: Mapping[str, Sequence[int]]) -> list[PortResult]:
        """Scan every port of every host; keep the identified services."""
        tasks = [(ip, str(port)) for ip, ports in targets.items() for port in ports]
        if not tasks:
            return []
        with ThreadPoolExecutor(max_workers=min(_ENGINE_WORKERS, len(tasks))) as pool:
            found = list(
                pool.map(
                    lambda task: scan_with_probe(
                        self.scanner, task[0], task[1], self.proxy, self.timeout
                    ),
                    tasks,
                )
            )
        results = [result for result in found if result.service_name]
        for result in results:
            log.info("result: %s", result)
        return results