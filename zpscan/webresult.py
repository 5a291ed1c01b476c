"""Web scan results and their text rendering."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from zpscan.finger import FingerRule

_RESET = "\x1b[0m"
_RED, _GREEN, _YELLOW, _BLUE, _CYAN = 31, 32, 33, 34, 36


@dataclass
class WebResult:
    """What a web scan learned about one URL."""

    url: str
    status_code: int = 0
    content_length: int = 0
    favicon: str = ""
    icon_hash: str = ""
    title: str = ""
    wappalyzer: dict[str, object] = field(default_factory=dict)
    fingers: list[FingerRule] = field(default_factory=list)


def _paint(value: object, code: int) -> str:
    return f"\x1b[{code}m{value}{_RESET}"


def _go_list(items: Iterable[object]) -> str:
    return "[" + " ".join(str(item) for item in items) + "]"


def has_poc(fingers: Iterable[FingerRule]) -> bool:
    """Tell whether any fingerprint has a proof of concept."""
    return any(finger.has_poc for finger in fingers)


def finger_string(fingers: Iterable[FingerRule]) -> str:
    """Render fingerprints as ``(name | [tags] | [pocTags] | desc)`` groups."""
    parts = []
    for finger in fingers:
        text = f"({finger.name}"
        if finger.tags:
            text += f" | {_go_list(finger.tags)}"
        if finger.poc_tags:
            text += f" | {_go_list(finger.poc_tags)}"
        if finger.desc:
            text += f" | {finger.desc}"
        parts.append(text + ")")
    return "".join(parts)


def wappalyzer_string(items: Iterable[str]) -> str:
    """Render detected technologies as ``(name)`` groups."""
    return "".join(f"({item})" for item in items)


def filter_tags(fingers: Iterable[FingerRule], tags: Iterable[str]) -> list[FingerRule]:
    """Drop fingerprints carrying any of the given tags."""
    excluded = set(tags)
    return [finger for finger in fingers if not excluded.intersection(finger.tags)]


def format_result(result: WebResult, no_color: bool) -> str:
    """Render one result as a line, optionally with ANSI colours."""
    fields: list[object] = [
        result.status_code,
        result.content_length,
        result.icon_hash,
        result.title,
        wappalyzer_string(result.wappalyzer),
        finger_string(result.fingers),
    ]
    if not no_color:
        codes = (_RED, _YELLOW, _BLUE, _GREEN, _CYAN, _RED)
        fields = [_paint(value, code) for value, code in zip(fields, codes)]
    return result.url + "".join(f" [{value}]" for value in fields) + "\n"