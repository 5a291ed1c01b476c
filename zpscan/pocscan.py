"""Proof-of-concept scanning of web targets with Goby definitions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Sequence
from urllib.parse import urlsplit

import requests

from zpscan.goby import GobyPoc, GobyRule
from zpscan.pocurl import PocResponse, PocResult, url_to_purl
from zpscan.webscan import new_session

log = logging.getLogger(__name__)


@dataclass
class PocInput:
    """A target and the tags selecting which checks to run on it."""

    target: str
    poc_tags: list[str] = field(default_factory=list)


@dataclass
class ExpInput:
    """A target, the exploit to run and its payload."""

    target: str
    poc_name: str
    payload: str = ""


def _split_input(target: str, example: str) -> tuple[str, str] | None:
    if "|" not in target:
        raise ValueError(f"input must name pocTags, example: -i {example}")
    parts = target.strip().split("|")
    if len(parts) != 2:
        return None
    return parts[0], parts[1]


def parse_poc_input(targets: Iterable[str]) -> list[PocInput]:
    """Parse ``url|tag1,tag2`` lines; raises ValueError when a tag part is missing."""
    results = []
    for target in targets:
        split = _split_input(target, "http://127.0.0.1:9200|elasticsearch")
        if split is None:
            continue
        url, tags = split
        results.append(PocInput(target=url, poc_tags=tags.split(",")))
    return results


def parse_exp_input(targets: Iterable[str], payload: str) -> list[ExpInput]:
    """Parse ``url|name`` lines; raises ValueError when the name part is missing."""
    results = []
    for target in targets:
        split = _split_input(target, "http://127.0.0.1:9200|CVE-2015-1427")
        if split is None:
            continue
        url, name = split
        results.append(ExpInput(target=url, poc_name=name, payload=payload))
    return results


class PocScanner:
    """Runs Goby proofs of concept against targets."""

    def __init__(
        self,
        goby_pocs: Sequence[GobyPoc],
        proxy: str = "",
        timeout: float = 10,
        headers: Iterable[str] = (),
    ) -> None:
        self.goby_pocs = list(goby_pocs)
        self.session = new_session(proxy, timeout, headers)

    def run(self, inputs: Iterable[PocInput]) -> list[PocResult]:
        """Scan every input in turn."""
        results: list[PocResult] = []
        for target_input in inputs:
            results.extend(self.scan(target_input))
        return results

    def scan(self, target_input: PocInput) -> list[PocResult]:
        """Run the checks selected by each tag of one input."""
        log.info("starting poc scan: %s", target_input.target)
        results: list[PocResult] = []
        for tag in target_input.poc_tags:
            log.info("pocTag: %s", tag)
            results.extend(self.run_goby(target_input.target, tag))
        if not results:
            log.info("no vulnerability found")
        return results

    def run_goby(self, target: str, tag: str) -> list[PocResult]:
        """Run every proof of concept whose name contains the tag."""
        selected = [poc for poc in self.goby_pocs if tag in poc.name.lower()]
        if not selected:
            log.error("load 0 goby pocs")
            return []
        log.info("load %d goby pocs", len(selected))
        results = []
        for poc in selected:
            log.debug("loading poc: %s", poc.name)
            try:
                found = self.scan_goby(target, poc)
            except (requests.RequestException, ValueError) as exc:
                log.error("scan of %s failed: %s", poc.name, exc)
                continue
            if found:
                result = PocResult(
                    target=target,
                    poc_tag=tag,
                    source="goby",
                    level=poc.level,
                    poc_name=poc.name,
                )
                log.info("[%s] [%s] [%s]", result.source, result.poc_name, result.level)
                results.append(result)
        return results

    def scan_goby(self, target: str, poc: GobyPoc) -> bool:
        """Run a proof of concept's steps and combine them with AND or OR.

        Raises requests.RequestException when a request fails and
        ValueError when a step is malformed.
        """
        operation = ""
        outputs: list[bool] = []
        for step in poc.scan_steps:
            if step in ("AND", "OR"):
                operation = step
                continue
            if not isinstance(step, Mapping):
                raise ValueError(f"malformed scan step: {step!r}")
            rule = GobyRule.from_dict(step)
            response = self.do_request(target, rule)
            outputs.append(rule.check_result(response))
        if operation == "AND":
            return all(outputs)
        if operation == "OR":
            return any(outputs)
        return False

    def do_request(self, target: str, rule: GobyRule) -> PocResponse:
        """Send a step's request to the target's base URL."""
        parts = urlsplit(target)
        url = f"{parts.scheme}://{parts.netloc}{rule.uri}"
        url = url.replace(" ", "%20").replace("+", "%20")
        response = self.session.request(rule.method or "GET", url, data=rule.data)
        return PocResponse(
            url=url_to_purl(parts),
            status=response.status_code,
            headers=dict(response.headers),
            content_type=response.headers.get("Content-Type", ""),
            body=response.content,
        )