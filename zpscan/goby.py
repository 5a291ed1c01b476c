"""Goby proof-of-concept definitions and evaluation of their response checks."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping

from zpscan.pocurl import PocResponse


@dataclass
class Check:
    """One comparison of a response part against a value."""

    bz: str = ""
    operation: str = ""
    type: str = ""
    value: str = ""
    variable: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Check:
        return cls(
            bz=data.get("bz", "") or "",
            operation=data.get("operation", "") or "",
            type=data.get("type", "") or "",
            value=data.get("value", "") or "",
            variable=data.get("variable", "") or "",
        )


# Each operation compares the check's value (left) with a response part (right).
_OPERATIONS: dict[str, Callable[[str, str], bool]] = {
    "contains": lambda value, part: value in part,
    "not contains": lambda value, part: value not in part,
    "start_with": lambda value, part: part.startswith(value),
    "end_with": lambda value, part: part.endswith(value),
    "==": lambda value, part: value == part,
    "!=": lambda value, part: value != part,
    ">": lambda value, part: value > part,
    "<": lambda value, part: value < part,
    ">=": lambda value, part: value >= part,
    "<=": lambda value, part: value <= part,
}


def _parts(variable: str, response: PocResponse) -> list[str]:
    if variable == "$body":
        return [response.body.decode("utf-8", errors="surrogateescape")]
    if variable == "$head":
        return list(response.headers.values())
    if variable == "$code":
        return [str(response.status)]
    return []


def check_operation(check: Check, response: PocResponse) -> bool:
    """Evaluate one check; for headers, any header value may satisfy it."""
    compare = _OPERATIONS.get(check.operation.casefold())
    if compare is None:
        return False
    return any(compare(check.value, part) for part in _parts(check.variable, response))


@dataclass
class GobyRule:
    """A scan step: one request and the tests its response must pass."""

    data: str = ""
    data_type: str = ""
    follow_redirect: bool = False
    header: dict[str, str] = field(default_factory=dict)
    method: str = ""
    uri: str = ""
    checks: list[Check] = field(default_factory=list)
    operation: str = ""
    test_type: str = ""
    set_variable: list[Any] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> GobyRule:
        """Build a rule from its JSON form."""
        request = data.get("Request") or {}
        test = data.get("ResponseTest") or {}
        return cls(
            data=request.get("data", "") or "",
            data_type=request.get("data_type", "") or "",
            follow_redirect=bool(request.get("follow_redirect", False)),
            header=dict(request.get("header") or {}),
            method=request.get("method", "") or "",
            uri=request.get("uri", "") or "",
            checks=[Check.from_dict(item) for item in test.get("checks") or []],
            operation=test.get("operation", "") or "",
            test_type=test.get("type", "") or "",
            set_variable=list(data.get("SetVariable") or []),
        )

    def check_result(self, response: PocResponse) -> bool:
        """Combine the checks with the rule's AND/OR operation."""
        results = [check_operation(check, response) for check in self.checks]
        if self.operation == "AND":
            return all(results)
        if self.operation == "OR":
            return any(results)
        return False


@dataclass
class GobyPoc:
    """A Goby proof of concept."""

    name: str = ""
    description: str = ""
    product: str = ""
    homepage: str = ""
    disclosure_date: str = ""
    author: str = ""
    fofa_query: str = ""
    goby_query: str = ""
    level: str = ""
    impact: str = ""
    vul_type: list[Any] = field(default_factory=list)
    cve_ids: list[Any] = field(default_factory=list)
    cnnvd: list[Any] = field(default_factory=list)
    cnvd: list[Any] = field(default_factory=list)
    cvss_score: str = ""
    is_0day: bool = False
    recommendation: str = ""
    translation: dict[str, Any] = field(default_factory=dict)
    references: list[str] = field(default_factory=list)
    has_exp: bool = False
    exp_params: Any = None
    exp_tips: dict[str, Any] = field(default_factory=dict)
    scan_steps: list[Any] = field(default_factory=list)
    exploit_steps: Any = None
    tags: Any = None
    attack_surfaces: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> GobyPoc:
        """Build a proof of concept from its JSON form."""
        return cls(
            name=data.get("Name", "") or "",
            description=data.get("Description", "") or "",
            product=data.get("Product", "") or "",
            homepage=data.get("Homepage", "") or "",
            disclosure_date=data.get("DisclosureDate", "") or "",
            author=data.get("Author", "") or "",
            fofa_query=data.get("FofaQuery", "") or "",
            goby_query=data.get("GobyQuery", "") or "",
            level=data.get("Level", "") or "",
            impact=data.get("Impact", "") or "",
            vul_type=list(data.get("VulType") or []),
            cve_ids=list(data.get("CVEIDs") or []),
            cnnvd=list(data.get("CNNVD") or []),
            cnvd=list(data.get("CNVD") or []),
            cvss_score=data.get("CVSSScore", "") or "",
            is_0day=bool(data.get("Is0day", False)),
            recommendation=data.get("Recommendation", "") or "",
            translation=dict(data.get("Translation") or {}),
            references=list(data.get("References") or []),
            has_exp=bool(data.get("HasExp", False)),
            exp_params=data.get("ExpParams"),
            exp_tips=dict(data.get("ExpTips") or {}),
            scan_steps=list(data.get("ScanSteps") or []),
            exploit_steps=data.get("ExploitSteps"),
            tags=data.get("Tags"),
            attack_surfaces=dict(data.get("AttackSurfaces") or {}),
        )


def load_all_pocs(directory: str | Path) -> list[GobyPoc]:
    """Load every ``.json`` file under a directory, recursively.

    Raises OSError for unreadable files and ValueError for invalid JSON.
    """
    pocs = []
    for path in sorted(Path(directory).rglob("*")):
        if not path.is_file() or not path.name.endswith(".json"):
            continue
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, Mapping):
            raise ValueError(f"{path}: proof of concept must be a JSON object")
        pocs.append(GobyPoc.from_dict(data))
    return pocs