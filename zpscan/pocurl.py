"""URL, request, response and result records used by proof-of-concept checks."""

from __future__ import annotations

from dataclasses import dataclass, field
from urllib.parse import SplitResult, unquote, urlsplit


@dataclass
class UrlType:
    """The parts of a URL as the checks see them."""

    scheme: str = ""
    domain: str = ""
    host: str = ""
    port: str = ""
    path: str = ""
    query: str = ""
    fragment: str = ""


@dataclass
class PocRequest:
    """The original request a check is built on."""

    url: UrlType = field(default_factory=UrlType)
    method: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""


@dataclass
class PocResponse:
    """A response handed to check rules."""

    url: UrlType = field(default_factory=UrlType)
    status: int = 0
    headers: dict[str, str] = field(default_factory=dict)
    content_type: str = ""
    body: bytes = b""


@dataclass
class PocResult:
    """A vulnerability found on a target."""

    target: str = ""
    poc_tag: str = ""
    source: str = ""
    level: str = ""
    poc_name: str = ""
    extractors: str = ""


def _valid_optional_port(port: str) -> bool:
    if port == "":
        return True
    if not port.startswith(":"):
        return False
    return all(ch.isdigit() and ch.isascii() for ch in port[1:])


def _split_host_port(host_port: str) -> tuple[str, str]:
    host, port = host_port, ""
    colon = host.rfind(":")
    if colon != -1 and _valid_optional_port(host[colon:]):
        host, port = host[:colon], host[colon + 1 :]
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return host, port


def url_to_purl(url: str | SplitResult) -> UrlType:
    """Break a URL into a UrlType; the host keeps its port, the domain does not."""
    parts = urlsplit(url) if isinstance(url, str) else url
    host = parts.netloc.rpartition("@")[2]
    domain, port = _split_host_port(host)
    return UrlType(
        scheme=parts.scheme,
        domain=domain,
        host=host,
        port=port,
        path=parts.path,
        query=parts.query,
        fragment=unquote(parts.fragment),
    )


def request_from_target(target: str) -> PocRequest:
    """Build the original request for a target URL."""
    return PocRequest(url=url_to_purl(target))


def url_type_to_string(u: UrlType) -> str:
    """Reassemble a UrlType into URL text."""
    out = ""
    if u.scheme:
        out += u.scheme + ":"
    if u.scheme or u.host:
        if u.host or u.path:
            out += "//"
        out += u.host
    path = u.path
    if path and path[0] != "/" and u.host:
        out += "/"
    if not out:
        colon = path.find(":")
        if colon > -1 and "/" not in path[:colon]:
            out += "./"
    out += path
    if u.query:
        out += "?" + u.query
    if u.fragment:
        out += "#" + u.fragment
    return out