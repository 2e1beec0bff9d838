"""Version parsing and Cargo-style version requirements.

Advisories describe affected ranges as lists of Cargo version requirements
(``">= 1.2.3"``, ``"^0.4"``, ``">= 1.0, < 1.5"``). This module parses those
into comparator bounds over SemVer versions so that the rest of the auditor
only ever asks one question: is this version vulnerable?

Matching follows Cargo: a prerelease such as ``1.0.0-rc.1`` only matches a
requirement that itself names a prerelease of ``1.0.0``.

Provides:
- VersionPredicate: Protocol for anything that answers ``is_vulnerable``
- VersionReq: One parsed requirement (comma-separated comparators, all must hold)
- parse_version: Parse a version string, raising VersionParseError
- parse_req: Cached VersionReq constructor
"""

import functools
import operator
import re
from typing import Callable, Protocol, runtime_checkable

from semver import Version

from lockaudit.core.errors import VersionParseError

Bound = tuple[Callable[[Version, Version], bool], Version]

_CLAUSE_RE = re.compile(r"^(>=|<=|>|<|=|\^|~)?\s*(\S+)$")
_WILDCARD_RE = re.compile(r"(\.(\*|x|X))+$")


@runtime_checkable
class VersionPredicate(Protocol):
    """Anything that can decide whether a version is affected."""

    def is_vulnerable(self, version: Version) -> bool:
        ...


def parse_version(text: str) -> Version:
    """Parse a SemVer version string.

    Args:
        text: Version as published, e.g. "1.0.0" or "0.3.0-alpha.1"

    Returns:
        Parsed Version

    Raises:
        VersionParseError: If the string is not a valid version
    """
    try:
        return Version.parse(text.strip())
    except ValueError as e:
        raise VersionParseError(f"invalid version {text!r}") from e


def _bump(version: Version, index: int) -> Version:
    parts = [version.major, version.minor, version.patch]
    parts[index] += 1
    for i in range(index + 1, 3):
        parts[i] = 0
    return Version(*parts)


def _parse_clause(clause: str) -> list[Bound]:
    if clause == "*":
        return []

    match = _CLAUSE_RE.match(clause)
    if not match:
        raise VersionParseError(f"invalid version requirement {clause!r}")
    op, raw = match.group(1), match.group(2)

    # "1.2.*" is the same as "=1.2"
    if _WILDCARD_RE.search(raw):
        raw = _WILDCARD_RE.sub("", raw)
        op = op or "="

    try:
        version = Version.parse(raw, optional_minor_and_patch=True)
    except ValueError as e:
        raise VersionParseError(f"invalid version requirement {clause!r}") from e
    given = min(re.split(r"[-+]", raw, maxsplit=1)[0].count(".") + 1, 3)

    if op == ">=":
        return [(operator.ge, version)]
    if op == "<":
        return [(operator.lt, version)]
    if op == ">":
        if given < 3:
            return [(operator.ge, _bump(version, given - 1))]
        return [(operator.gt, version)]
    if op == "<=":
        if given < 3:
            return [(operator.lt, _bump(version, given - 1))]
        return [(operator.le, version)]
    if op == "=":
        if given < 3:
            return [(operator.ge, version), (operator.lt, _bump(version, given - 1))]
        return [(operator.eq, version)]
    if op == "~":
        upper = _bump(version, 0 if given == 1 else 1)
        return [(operator.ge, version), (operator.lt, upper)]

    # Caret, explicit or implied by a bare version
    major, minor = version.major, version.minor
    if major > 0 or given == 1:
        upper = _bump(version, 0)
    elif minor > 0 or given == 2:
        upper = _bump(version, 1)
    else:
        upper = _bump(version, 2)
    return [(operator.ge, version), (operator.lt, upper)]


class VersionReq:
    """A Cargo version requirement such as ``">= 1.2.0, < 1.4.0"``."""

    def __init__(self, text: str):
        self.text = text
        clauses = [c.strip() for c in text.split(",")]
        if not any(clauses):
            raise VersionParseError(f"empty version requirement {text!r}")

        self._bounds: list[Bound] = []
        for clause in clauses:
            if not clause:
                raise VersionParseError(f"invalid version requirement {text!r}")
            self._bounds.extend(_parse_clause(clause))

    def matches(self, version: Version) -> bool:
        if not all(compare(version, bound) for compare, bound in self._bounds):
            return False
        if version.prerelease is None:
            return True
        release = version.finalize_version()
        return any(
            bound.prerelease is not None and bound.finalize_version() == release
            for _, bound in self._bounds
        )

    def lower_bound(self) -> Version | None:
        """Inclusive lower bound, if the requirement has one.

        Strict bounds are rounded to the next patch release.
        """
        lows = []
        for op, bound in self._bounds:
            if op in (operator.ge, operator.eq):
                lows.append(bound)
            elif op is operator.gt:
                lows.append(_bump(bound, 2))
        return max(lows) if lows else None

    def upper_bound(self) -> Version | None:
        """Exclusive upper bound, if the requirement has one.

        Inclusive bounds are rounded to the next patch release.
        """
        highs = []
        for op, bound in self._bounds:
            if op is operator.lt:
                highs.append(bound)
            elif op in (operator.le, operator.eq):
                highs.append(_bump(bound, 2))
        return min(highs) if highs else None

    def __repr__(self) -> str:
        return f"VersionReq({self.text!r})"

    def __str__(self) -> str:
        return self.text


@functools.lru_cache(maxsize=None)
def parse_req(text: str) -> VersionReq:
    return VersionReq(text)
