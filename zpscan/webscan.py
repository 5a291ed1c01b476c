"""Web probing: liveness checks, page details, favicon hashes and fingerprints."""

from __future__ import annotations

import logging
import warnings
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence
from urllib.parse import urlsplit

import requests
from bs4 import BeautifulSoup

from zpscan.finger import FingerRule, match_fingers
from zpscan.iconhash import mmh3_hash32, stand_base64
from zpscan.jsjump import js_jump
from zpscan.title import get_title
from zpscan.webresult import WebResult, format_result

log = logging.getLogger(__name__)

TO_HTTPS = (
    "sent to HTTPS port",
    "This combination of host and port requires TLS",
    "Instead use the HTTPS scheme to",
    "This web server is running in SSL mode",
)
_MAX_JUMPS = 3
_HONEYPOT_FINGERS = 5


class _Session(requests.Session):
    """A session that applies a default timeout to every request."""

    def __init__(self, timeout: float) -> None:
        super().__init__()
        self.timeout = timeout

    def request(self, method: str, url: str, *args: Any, **kwargs: Any) -> requests.Response:  # type: ignore[override]
        kwargs.setdefault("timeout", self.timeout)
        return super().request(method, url, *args, **kwargs)


def new_session(
    proxy: str = "", timeout: float = 10, headers: Iterable[str] = ()
) -> requests.Session:
    """Build an HTTP session that skips certificate checks.

    ``headers`` holds ``Name: value`` lines added to every request.
    """
    warnings.filterwarnings("ignore", message="Unverified HTTPS request")
    session = _Session(timeout)
    session.verify = False
    if proxy:
        session.proxies = {"http": proxy, "https": proxy}
    for line in headers:
        name, sep, value = line.partition(":")
        if sep and name.strip():
            session.headers[name.strip()] = value.strip()
    return session


def _wants_https(response: requests.Response) -> bool:
    text = response.text
    return any(marker in text for marker in TO_HTTPS)


def first_get(session: requests.Session, url: str) -> requests.Response:
    """Fetch a target, choosing between http and https as the server demands.

    Raises requests.RequestException when the target cannot be reached.
    """
    if not url.startswith("http"):
        try:
            response = session.get("http://" + url)
        except requests.RequestException as exc:
            log.debug("request failed: %s", exc)
        else:
            if not _wants_https(response):
                return response
        return session.get("https://" + url)
    if url.startswith("http://"):
        try:
            response = session.get(url)
        except requests.RequestException as exc:
            log.debug("request failed: %s", exc)
        else:
            if not _wants_https(response):
                return response
        return session.get("https://" + url[len("http://") :])
    return session.get(url)


def check_alive(
    urls: Sequence[str], timeout: float = 10, threads: int = 50, proxy: str = ""
) -> list[str]:
    """Return the final URL of every host that answers over http or https."""
    if not urls:
        return []
    log.info("checking HTTP liveness: %d", len(urls))
    session = new_session(proxy, timeout)

    def probe(task: str) -> str | None:
        for scheme in ("http://", "https://"):
            try:
                return session.get(scheme + task).url
            except requests.RequestException as exc:
                log.debug("%s", exc)
        return None

    with ThreadPoolExecutor(max_workers=max(1, threads)) as pool:
        found = list(pool.map(probe, urls))
    log.info("HTTP liveness check finished")
    return [url for url in found if url is not None]


def _base_url(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


def find_favicon(body: bytes | str, url: str) -> str:
    """Return the absolute URL of the icon a page links to, or ``""``."""
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        soup = BeautifulSoup(body, "html.parser")
    favicon = ""
    for node in soup.find_all("link"):
        href = node.get("href") or ""
        rel = node.get("rel") or ""
        if not isinstance(rel, str):
            rel = " ".join(rel)
        if href and "icon" in rel:
            favicon = href
            break
    if not favicon:
        return ""
    if "http" not in favicon:
        favicon = favicon.strip().lstrip("./")
        if not favicon.startswith("/"):
            favicon = "/" + favicon
        favicon = _base_url(url) + favicon
    return favicon


def _header_string(response: requests.Response) -> str:
    return "\n".join(f"{name}: {value}" for name, value in response.headers.items())


@dataclass
class WebOptions:
    """Settings of a web scan."""

    proxy: str = ""
    threads: int = 50
    timeout: float = 10
    headers: list[str] = field(default_factory=list)
    no_color: bool = False
    no_iconhash: bool = False
    finger_rules: list[FingerRule] = field(default_factory=list)


class WebScanner:
    """Collects status, title, favicon hash and fingerprints of web targets."""

    def __init__(self, options: WebOptions) -> None:
        self.options = options
        self.session = new_session(options.proxy, options.timeout, options.headers)
        # Shiro answers a rememberMe cookie with a telltale header.
        self.session.headers["Cookie"] = "rememberMe=1"

    def _safe_webinfo(self, url: str) -> WebResult | None:
        try:
            return self.webinfo(url)
        except requests.RequestException as exc:
            log.debug("%s", exc)
            return None

    def run(self, urls: Sequence[str]) -> list[WebResult]:
        """Scan every URL; results that look like honeypots are dropped."""
        if not urls:
            return []
        log.info("starting web scan")
        with ThreadPoolExecutor(max_workers=max(1, self.options.threads)) as pool:
            found = list(pool.map(self._safe_webinfo, urls))
        results = []
        for result in found:
            if result is None:
                continue
            if len(result.fingers) > _HONEYPOT_FINGERS:
                log.warning("%s may be a honeypot", result.url)
                continue
            log.info("%s", format_result(result, self.options.no_color).rstrip("\n"))
            results.append(result)
        log.info("web scan finished")
        return results

    def webinfo(self, url: str) -> WebResult:
        """Fetch one target, following up to three script redirects."""
        response = first_get(self.session, url)
        for _ in range(_MAX_JUMPS):
            jump = js_jump(response.content, response.url)
            if not jump:
                break
            response = self.session.get(jump)
        base = _base_url(response.url)
        result = WebResult(
            url=base,
            status_code=response.status_code,
            content_length=len(response.content),
            title=get_title(response.content),
            fingers=match_fingers(
                self.options.finger_rules,
                response.content,
                _header_string(response),
                "",
                lambda location: self.icon_hash(base + location),
            ),
        )
        if not self.options.no_iconhash:
            favicon = find_favicon(response.content, response.url)
            if favicon:
                icon_hash = self.icon_hash(favicon)
                if icon_hash:
                    result.favicon, result.icon_hash = favicon, icon_hash
        return result

    def icon_hash(self, url: str) -> str:
        """Hash the icon at ``url``; ``""`` when it cannot be fetched."""
        try:
            response = self.session.get(url)
        except requests.RequestException as exc:
            log.debug("%s", exc)
            return ""
        if response.status_code != 200 or not response.content:
            return ""
        return mmh3_hash32(stand_base64(response.content))