"""Directory and backup-file brute forcing against web targets."""

from __future__ import annotations

import ipaddress
import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable

import requests

from zpscan.title import get_title
from zpscan.webscan import first_get, new_session

log = logging.getLogger(__name__)

EXTENSIONS = (
    ".zip", ".7z", ".rar", ".tar", ".txt", ".tar.gz", ".tgz",
    ".bak", ".swp", ".jar", ".war", ".sql", ".dll",
)
MIME_TYPES = {
    ".zip": "application/zip",
    ".7z": "application/x-7z-compressed",
    ".rar": "application/x-rar-compressed",
    ".tar": "application/x-tar",
    ".txt": "text/plain",
    ".tar.gz": "application/gzip",
    ".tgz": "application/x-tar",
    ".bak": "application/octet-stream",
    ".swp": "application/octet-stream",
    ".jar": "application/java-archive",
    ".war": "application/octet-stream",
    ".sql": "application/x-sql",
}


@dataclass
class DirResult:
    """A path that answered; results order by content length."""

    url: str
    status_code: int
    content_length: int
    content_type: str = field(default="", repr=False)
    title: str = ""

    def __lt__(self, other: DirResult) -> bool:
        return self.content_length < other.content_length


@dataclass
class DirOptions:
    """Settings of a directory scan."""

    proxy: str = ""
    threads: int = 50
    timeout: float = 10
    headers: list[str] = field(default_factory=list)
    max_matched: int = 5
    match_status: list[int] = field(default_factory=lambda: [200])


@dataclass
class DirInput:
    """A target and the paths to try on it."""

    target: str
    dirs: list[str] = field(default_factory=list)


def generate_ip_dirs(ip: str) -> list[str]:
    """Archive names built from an address, one per known extension."""
    return [ip + extension for extension in EXTENSIONS]


def generate_domain_dirs(domain: str) -> list[str]:
    """Archive names built from every run of consecutive domain labels."""
    labels = domain.split(".")
    results = [labels[0]]
    for i in range(len(labels)):
        for j in range(i, len(labels)):
            stem = ".".join(labels[i : j + 1])
            results.extend(stem + extension for extension in EXTENSIONS)
    return results


def _is_ip(text: str) -> bool:
    try:
        ipaddress.ip_address(text)
    except ValueError:
        return False
    return True


def generate_dirs(url: str) -> list[str]:
    """Derive candidate paths from the host part of a URL."""
    if "://" in url:
        url = url.split("://")[1]
    if ":" in url:
        url = url.split(":")[0]
    if _is_ip(url):
        return generate_ip_dirs(url)
    return generate_domain_dirs(url)


def _matching_suffix(url: str) -> str | None:
    return next((ext for ext in EXTENSIONS if url.endswith(ext)), None)


class DirScanner:
    """Requests candidate paths and keeps the distinctive answers."""

    def __init__(self, options: DirOptions) -> None:
        self.options = options
        self.session = new_session(options.proxy, options.timeout, options.headers)

    def run(self, inputs: Iterable[DirInput]) -> list[DirResult]:
        """Scan every input, adding paths derived from its host name."""
        results: list[DirResult] = []
        for target_input in inputs:
            dirs = target_input.dirs + generate_dirs(target_input.target)
            target_input.dirs = list(dict.fromkeys(dirs))
            results.extend(self.scan(target_input))
        return results

    def _accepts(self, result: DirResult) -> bool:
        if result.content_length == 0 or result.status_code not in self.options.match_status:
            return False
        suffix = _matching_suffix(result.url)
        if suffix is not None and result.content_type != MIME_TYPES.get(suffix, ""):
            return False
        return True

    def _try(self, url: str) -> DirResult | None:
        try:
            result = self.request(url)
        except requests.RequestException as exc:
            log.debug("%s", exc)
            return None
        if not self._accepts(result):
            return None
        log.info(
            "%s [%s] [%s] [%s]",
            result.url, result.status_code, result.content_length, result.title,
        )
        return result

    def scan(self, target_input: DirInput) -> list[DirResult]:
        """Scan one target; lengths seen ``max_matched`` times or more are dropped."""
        log.info("starting directory scan: %s", target_input.target)
        log.info("wordlist size: %d", len(target_input.dirs))
        try:
            response = first_get(self.session, target_input.target)
        except requests.RequestException as exc:
            log.error("%s", exc)
            return []
        base = response.url.removesuffix("/")
        tasks = [base + (d if d.startswith("/") else "/" + d) for d in target_input.dirs]

        with ThreadPoolExecutor(max_workers=max(1, self.options.threads)) as pool:
            found = [result for result in pool.map(self._try, tasks) if result is not None]

        lengths = Counter(result.content_length for result in found)
        results = [
            DirResult(
                url=result.url,
                status_code=result.status_code,
                content_length=result.content_length,
                title=result.title,
            )
            for result in found
            if lengths[result.content_length] < self.options.max_matched
        ]
        log.info("directory scan finished")
        return results

    def request(self, url: str) -> DirResult:
        """Fetch one path; raises requests.RequestException on failure."""
        response = self.session.get(url)
        return DirResult(
            url=response.url,
            status_code=response.status_code,
            content_length=len(response.content),
            content_type=response.headers.get("Content-Type", ""),
            title=get_title(response.content),
        )