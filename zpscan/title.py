"""Extraction of the page title from an HTML body."""

from __future__ import annotations

import html
import re
import warnings

from bs4 import BeautifulSoup

_CUTSET = "\n\t\v\f\r"
_TITLE = re.compile(r"<\s*title.*>(.*?)<\s*/\s*title>", re.IGNORECASE | re.MULTILINE)


def _trim_title_tags(title: str) -> str:
    begin = title.find(">")
    end = title.find("</")
    if begin < 0 or end < 0:
        return title
    return title[begin + 1 : end]


def _title_from_dom(text: str) -> str | None:
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        soup = BeautifulSoup(text, "html.parser")
    node = soup.find("title")
    if node is None:
        return None
    return node.get_text()


def get_title(body: bytes | str) -> str:
    """Return the cleaned text of the first ``<title>`` element, or ``""``."""
    text = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body
    title = _title_from_dom(text)
    if title is None:
        found = _TITLE.search(text)
        title = html.unescape(_trim_title_tags(found.group(0))) if found else ""
    title = title.strip(_CUTSET).strip()
    return title.replace("\n", "").replace("\r", "")