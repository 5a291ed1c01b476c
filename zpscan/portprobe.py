"""Parsing of nmap service-probe databases and matching of service banners."""

from __future__ import annotations

import logging
import re
import warnings
from dataclasses import dataclass, field

log = logging.getLogger(__name__)

_ESCAPE = re.compile(rb"\\(x[0-9a-fA-F]{2}|[0-7]{1,3}|[aftnrv])")
_STRUCT_CODES = {
    ord("a"): 0x07,
    ord("f"): 0x0C,
    ord("t"): 0x09,
    ord("n"): 0x0A,
    ord("r"): 0x0D,
    ord("v"): 0x0B,
}
_REGEX_CHARS = b".*?+{}()^$|\\"
_INTEGER = re.compile(r"[+-]?[0-9]+")

# (attribute, key) pairs in the order the version fields are extracted.
_VERSION_FIELDS = (
    ("vendor_product", "p"),
    ("version", "v"),
    ("info", "i"),
    ("hostname", "h"),
    ("operating_system", "o"),
    ("device_type", "d"),
    ("cpe", "cpe:"),
)


def _decode(s: str | bytes, escape_regex_chars: bool) -> bytes:
    raw = s.encode("utf-8", "surrogateescape") if isinstance(s, str) else s

    def replace(found: re.Match[bytes]) -> bytes:
        token = found.group(0)
        kind = token[1]
        if kind == ord("x"):
            value = int(token[2:], 16)
            if escape_regex_chars and value in _REGEX_CHARS:
                return b"\\" + bytes([value])
            return bytes([value])
        if kind in _STRUCT_CODES:
            return bytes([_STRUCT_CODES[kind]])
        # Octal escapes take the digits after the first one.
        digits = token[2:]
        return bytes([int(digits, 8) if digits else 0])

    return _ESCAPE.sub(replace, raw)


def decode_pattern(s: str | bytes) -> bytes:
    """Unescape a match pattern, keeping regex metacharacters escaped."""
    return _decode(s, escape_regex_chars=True)


def decode_data(s: str | bytes) -> bytes:
    """Unescape the payload a probe sends."""
    return _decode(s, escape_regex_chars=False)


def _as_text(response: bytes | str) -> str:
    if isinstance(response, str):
        return response
    return response.decode("utf-8", errors="replace")


def _atoi(text: str) -> int:
    if _INTEGER.fullmatch(text) is None:
        return 0
    return int(text)


@dataclass
class Directive:
    """A ``name flag<delim>text`` directive from a probe database line."""

    name: str
    flag: str
    delimiter: str
    text: str


def _parse_directive(data: str) -> Directive:
    blank = data.find(" ")
    if blank < 0 or len(data) < blank + 3:
        raise ValueError(f"malformed directive: {data!r}")
    return Directive(
        name=data[:blank],
        flag=data[blank + 1 : blank + 2],
        delimiter=data[blank + 2 : blank + 3],
        text=data[blank + 3 :],
    )


@dataclass
class Extras:
    """Service details extracted from a matching response."""

    service_name: str = ""
    vendor_product: str = ""
    version: str = ""
    info: str = ""
    hostname: str = ""
    operating_system: str = ""
    device_type: str = ""
    cpe: str = ""
    sign: str = ""


@dataclass
class Match:
    """A ``match`` or ``softmatch`` rule of a probe."""

    service: str
    pattern: str
    version_info: str
    compiled: re.Pattern
    is_soft: bool = False

    def matches(self, response: bytes | str) -> bool:
        """Tell whether the response satisfies the rule's pattern."""
        return self.compiled.search(_as_text(response)) is not None

    def parse_version_info(self, response: bytes | str) -> Extras:
        """Fill in version details from the groups the pattern captured."""
        found = self.compiled.search(_as_text(response))
        if found is None:
            raise ValueError("pattern does not match the response")
        info = self.version_info
        for index, value in enumerate(found.groups(), start=1):
            info = info.replace(f"${index}", value or "")

        extras = Extras()
        for attribute, key in _VERSION_FIELDS:
            for delimiter in "/|":
                if f" {key}{delimiter}" not in info:
                    continue
                # The "|" forms are alternations, exactly as the rule syntax used.
                if delimiter == "/":
                    expression = f"{key}/([^/]*)/"
                else:
                    expression = f"{key}|([^|]*)|"
                hit = re.search(expression, info)
                if hit is not None:
                    setattr(extras, attribute, hit.group(1) or "")
        return extras


def _parse_match(line: str, keyword: str, soft: bool) -> Match | None:
    directive = _parse_directive(line[len(keyword) + 1 :])
    parts = directive.text.split(directive.delimiter)
    pattern, version_info = parts[0], "".join(parts[1:])
    try:
        source = decode_pattern(pattern).decode("utf-8")
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", FutureWarning)
            compiled = re.compile(source, re.ASCII)
    except (UnicodeDecodeError, re.error) as exc:
        log.debug("skipping unusable pattern %r: %s", pattern, exc)
        return None
    return Match(
        service=directive.name,
        pattern=pattern,
        version_info=version_info,
        compiled=compiled,
        is_soft=soft,
    )


@dataclass
class Probe:
    """One ``Probe`` section of the database."""

    name: str = ""
    data: bytes = b""
    ports: list[str] = field(default_factory=list)
    fallback: str = ""
    matches: list[Match] = field(default_factory=list)
    rarity: int = 0

    @classmethod
    def from_block(cls, block: str) -> Probe:
        """Build a probe from its section text, starting after the word ``Probe``."""
        lines = block.strip().split("\n")
        probe = cls()
        probe._parse_header(lines[0])
        for line in lines:
            if line.startswith("match "):
                match = _parse_match(line, "match", soft=False)
                if match is not None:
                    probe.matches.append(match)
            elif line.startswith("softmatch "):
                match = _parse_match(line, "softmatch", soft=True)
                if match is not None:
                    probe.matches.append(match)
            elif line.startswith("ports "):
                probe._parse_ports(line)
            elif line.startswith("fallback "):
                probe.fallback = line[len("fallback") + 1 :]
            elif line.startswith("rarity "):
                probe.rarity = _atoi(line[len("rarity") + 1 :])
        return probe

    def _parse_header(self, line: str) -> None:
        protocol, rest = line[:4], line[4:]
        if protocol not in ("TCP ", "UDP "):
            log.debug("probe protocol must be TCP or UDP: %r", line)
        if not rest:
            log.debug("probe has no name: %r", line)
        directive = _parse_directive(rest)
        self.name = directive.name
        payload = directive.text.split(directive.delimiter)
        self.data = decode_data(payload[0])

    def _parse_ports(self, line: str) -> None:
        value = line.replace("ports ", "")
        if "," in value:
            self.ports.extend(value.split(","))
        else:
            self.ports = [value]


@dataclass
class NmapProbe:
    """A parsed service-probe database."""

    probes: list[Probe] = field(default_factory=list)
    by_name: dict[str, Probe] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.by_name = {probe.name: probe for probe in self.probes}

    @classmethod
    def parse(cls, text: str | bytes) -> NmapProbe:
        """Parse database text; raises ValueError when it holds no content."""
        if isinstance(text, bytes):
            text = text.decode("utf-8", "surrogateescape")
        lines = [
            stripped
            for stripped in (raw.strip() for raw in text.split("\n"))
            if stripped and not stripped.startswith("#")
        ]
        if not lines:
            raise ValueError("probe database is empty")

        excludes = sum(1 for line in lines if line.startswith("Exclude "))
        if excludes > 1:
            log.debug("probe database holds more than one Exclude line")
        if not lines[0].startswith(("Exclude ", "Probe ")):
            log.debug("probe database should start with Probe or Exclude")
        if excludes == 1:
            lines = lines[1:]

        content = "\n" + "\n".join(lines)
        blocks = content.split("\nProbe")[1:]
        return cls([Probe.from_block(block) for block in blocks])

    def count(self) -> int:
        """Number of match rules across all probes."""
        return sum(len(probe.matches) for probe in self.probes)

    def match_response(
        self, response: bytes, matches: list[Match], fallback: str
    ) -> Extras | None:
        """Identify the service behind a response, trying the fallback probe too."""
        if not response:
            return None
        candidates = list(matches)
        fallback_probe = self.by_name.get(fallback)
        if fallback_probe is not None:
            candidates.extend(fallback_probe.matches)
        for match in candidates:
            if match.is_soft or not match.matches(response):
                continue
            extras = match.parse_version_info(response)
            extras.service_name = match.service
            return extras
        return None