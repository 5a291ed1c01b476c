"""Detection of meta-refresh and JavaScript redirects in HTML bodies."""

from __future__ import annotations

import ipaddress
import posixpath
import re
from urllib.parse import urlsplit

_META_REFRESH = re.compile(r"<meta.*?http-equiv=.*?refresh.*?url=(.*?)/?>", re.IGNORECASE)
_LOCATION = re.compile(
    r"[window\.]?location[\.href]?.*?=.*?[\"'](.*?)[\"']", re.IGNORECASE
)
_LOCATION_REPLACE = re.compile(
    r"window\.location\.replace\(['\"](.*?)['\"]\)", re.IGNORECASE
)
_HOST = re.compile(r"https?://(.*?)/", re.IGNORECASE)
_SCRIPT_WINDOW = 700


def _text(body: bytes | str) -> str:
    return body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body


def _head(text: str, size: int) -> str:
    raw = text.encode("utf-8", "surrogateescape")
    if len(raw) <= size:
        return text
    return raw[:size].decode("utf-8", errors="ignore")


def _is_local_ip(host: str) -> bool:
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return False
    return address.is_private or address.is_loopback


def _directory(path: str) -> str:
    directory = posixpath.dirname(path)
    if not directory:
        return "."
    directory = posixpath.normpath(directory)
    if directory.startswith("//"):
        directory = "/" + directory.lstrip("/")
    return directory


def regex_js_jump(body: bytes | str) -> str:
    """Return the raw redirect target found in the body, or ``""``."""
    text = _text(body)
    found = _META_REFRESH.search(text)
    if found is not None:
        whole, target = found.group(0), found.group(1)
        commented = (
            "<!--\r\n" + whole in text or "<!--[if lt IE 7]>\n" + whole in text
        )
        if not commented and "nojavascript.html" not in target:
            return target
    head = _head(text, _SCRIPT_WINDOW)
    for expression in (_LOCATION, _LOCATION_REPLACE):
        found = expression.search(head)
        if found is not None:
            return found.group(1)
    return ""


def js_jump(body: bytes | str, url: str) -> str:
    """Resolve the redirect in a body fetched from ``url`` to an absolute URL.

    Returns ``""`` when the body holds no redirect.
    """
    target = regex_js_jump(body)
    if not target:
        return ""
    target = target.strip().replace('"', "").replace("'", "").replace("./", "/")

    parts = urlsplit(url)
    host = parts.netloc.rpartition("@")[2]
    if target.startswith("http"):
        found = _HOST.search(target)
        if found is not None:
            target_host = found.group(1)
            if _is_local_ip(target_host.split(":")[0]):
                target = target.replace(target_host, host)
        return target
    if target.startswith("/"):
        return f"{parts.scheme}://{host}{target}"
    return f"{parts.scheme}://{host}/{_directory(parts.path)}/{target}"