"""Web fingerprint rules and matching of responses against them."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping

log = logging.getLogger(__name__)


@dataclass
class Rule:
    """One test: a keyword looked for at a location by a method."""

    method: str = ""
    location: str = ""
    keyword: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Rule:
        return cls(
            method=data.get("method", ""),
            location=data.get("location", ""),
            keyword=data.get("keyword", ""),
        )

    def describe(self) -> str:
        return f"{self.method} {self.location} {self.keyword}"


@dataclass
class Finger:
    """A group of rules combined with ``and`` or ``or``."""

    type: str = ""
    rules: list[Rule] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Finger:
        return cls(
            type=data.get("type", ""),
            rules=[Rule.from_dict(item) for item in data.get("rules") or []],
        )


@dataclass
class FingerRule:
    """A named product fingerprint made of several fingers."""

    name: str = ""
    tags: list[str] = field(default_factory=list)
    poc_tags: list[str] = field(default_factory=list)
    desc: str = ""
    fingers: list[Finger] = field(default_factory=list)
    has_poc: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FingerRule:
        """Build a rule from its JSON form."""
        return cls(
            name=data.get("name", ""),
            tags=list(data.get("tags") or []),
            poc_tags=list(data.get("pocTags") or []),
            desc=data.get("desc", ""),
            fingers=[Finger.from_dict(item) for item in data.get("fingers") or []],
            has_poc=bool(data.get("hasPoc", False)),
        )


def _text(value: bytes | str) -> str:
    return value.decode("utf-8", errors="replace") if isinstance(value, bytes) else value


def match_fingers(
    rules: Iterable[FingerRule],
    body: bytes | str,
    headers: str = "",
    cert: str = "",
    icon_hash: Callable[[str], str] | None = None,
) -> list[FingerRule]:
    """Return the fingerprint rules the response satisfies, in rule order.

    ``icon_hash`` maps an icon path to its hash; each path is asked once.
    """
    body_text = _text(body)
    icon_cache: dict[str, str] = {}
    to_match = ""
    results: list[FingerRule] = []
    for finger_rule in rules:
        matched = False
        matched_by = ""
        for finger in finger_rule.fingers:
            hits = 0
            for rule in finger.rules:
                if rule.method == "keyword":
                    if rule.location == "body":
                        to_match = body_text
                    elif rule.location == "header":
                        to_match = headers
                    elif rule.location == "cert":
                        to_match = cert
                elif rule.method == "iconhash":
                    if rule.location not in icon_cache:
                        icon_cache[rule.location] = (
                            icon_hash(rule.location) if icon_hash else ""
                        )
                    to_match = icon_cache[rule.location]
                if rule.keyword in to_match:
                    if finger.type == "and":
                        hits += 1
                        matched_by += rule.describe() + " | "
                    elif finger.type == "or":
                        matched = True
                        matched_by = rule.describe()
                        break
                elif finger.type == "and":
                    break
            if hits == len(finger.rules):
                matched = True
        if matched:
            log.debug("[%s] by [%s]", finger_rule.name, matched_by)
            results.append(finger_rule)
    return results