"""npm version ranges: parsing, satisfaction and max-satisfying selection.

Used when a request or manifest names a range (``chalk@^5.0.0``) rather
than an exact version: the registry client picks the highest published
version the range accepts.

Supported grammar (npm semantics):

- Exact: ``1.2.3``, ``=1.2.3``, ``v1.2.3``, ``==1.2.3``
- Comparators: ``>``, ``>=``, ``<``, ``<=``, ``!=``
- Caret: ``^1.2.3``, ``^0.2``, ``^1``
- Tilde: ``~1.2.3``, ``~1.2``, ``~1`` (``~>`` accepted as an alias)
- X-ranges: ``1.x``, ``1.2.*``, ``1``, ``1.2``, ``*``, ``x``, empty string
- Hyphen ranges: ``1.2.3 - 2.3.4``
- Conjunction by whitespace or comma: ``>=1.0.0 <2.0.0``
- Disjunction: ``^1.0.0 || ^2.0.0``

Every form is desugared into plain comparator sets over
``(major, minor, patch)`` tuples. Pre-release versions only satisfy a
range that names that exact version.

References
----------
.. [SemVer] Preston-Werner, T. (2013). "Semantic Versioning 2.0.0."
   https://semver.org/
.. [node-semver] npm. "semver: Ranges." https://github.com/npm/node-semver
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable

# ---------------------------------------------------------------------------
# Version parsing
# ---------------------------------------------------------------------------

_SEMVER_RE = re.compile(
    r"^[=v]*(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<pre>[0-9A-Za-z\-.]+))?"
    r"(?:\+(?P<build>[0-9A-Za-z\-.]+))?$"
)

_Triple = tuple[int, int, int]
_Comparator = tuple[str, _Triple]


def parse_version(version: str) -> tuple[int, int, int, str]:
    """Parse a full semantic version.

    Build metadata is dropped. The pre-release tag is returned as a
    string, empty for releases.

    Args:
        version: Semantic version string (e.g., "1.2.3", "v2.0.0-rc.1").

    Returns:
        A ``(major, minor, patch, prerelease)`` tuple.

    Raises:
        ValueError: If the string does not match semantic version format.
    """
    m = _SEMVER_RE.match(version.strip())
    if not m:
        raise ValueError(f"Invalid semantic version: {version!r}")
    return (
        int(m.group("major")),
        int(m.group("minor")),
        int(m.group("patch")),
        m.group("pre") or "",
    )


def _version_key(version: str) -> tuple[int, int, int, int, str]:
    """Sort key for version strings: releases rank above their pre-releases."""
    major, minor, patch, pre = parse_version(version)
    return major, minor, patch, 0 if pre else 1, pre


# ---------------------------------------------------------------------------
# Range parsing
# ---------------------------------------------------------------------------

# One comparator token such as "^1.2", ">=2.0.0" or "1.x".
_ATOM_RE = re.compile(
    r"^(?P<op><=|>=|==|!=|<|>|=|\^|~>?)?\s*v?"
    r"(?P<major>\d+|[xX*])"
    r"(?:\.(?P<minor>\d+|[xX*]))?"
    r"(?:\.(?P<patch>\d+|[xX*]))?"
    r"(?:-(?P<pre>[0-9A-Za-z\-.]+))?"
    r"(?:\+[0-9A-Za-z\-.]+)?$"
)

_HYPHEN_RE = re.compile(r"^\s*(?P<low>\S+)\s+-\s+(?P<high>\S+)\s*$")

_BARE_OPERATORS = frozenset({"<", "<=", ">", ">=", "=", "==", "!=", "^", "~", "~>"})

_NOTHING: list[_Comparator] = [("<", (0, 0, 0))]


def _part(raw: str | None) -> int | None:
    if raw is None or raw in ("x", "X", "*"):
        return None
    return int(raw)


def _parse_atom(token: str) -> tuple[str, int | None, int | None, int | None]:
    """Split a token into operator and partial version (None = wildcard)."""
    m = _ATOM_RE.match(token)
    if not m:
        raise ValueError(f"Invalid range atom: {token!r}")
    major = _part(m.group("major"))
    minor = _part(m.group("minor")) if major is not None else None
    patch = _part(m.group("patch")) if minor is not None else None
    return m.group("op") or "", major, minor, patch


def _desugar(op: str, major: int | None, minor: int | None, patch: int | None) -> list[_Comparator]:
    """Turn one operator + partial version into plain comparators.

    An empty list means "any version".
    """
    if major is None:
        return list(_NOTHING) if op in ("<", ">") else []

    low = (major, minor or 0, patch or 0)

    if op in ("", "=", "=="):
        if minor is None:
            return [(">=", low), ("<", (major + 1, 0, 0))]
        if patch is None:
            return [(">=", low), ("<", (major, minor + 1, 0))]
        return [("==", low)]

    if op == "!=":
        if patch is None:
            raise ValueError("!= requires a full version")
        return [("!=", low)]

    if op == "^":
        if minor is None or major > 0:
            return [(">=", low), ("<", (major + 1, 0, 0))]
        if patch is None or minor > 0:
            return [(">=", low), ("<", (0, minor + 1, 0))]
        return [(">=", low), ("<", (0, 0, patch + 1))]

    if op in ("~", "~>"):
        if minor is None:
            return [(">=", low), ("<", (major + 1, 0, 0))]
        return [(">=", low), ("<", (major, minor + 1, 0))]

    if op == ">=":
        return [(">=", low)]
    if op == "<":
        return [("<", low)]

    if op == ">":
        if minor is None:
            return [(">=", (major + 1, 0, 0))]
        if patch is None:
            return [(">=", (major, minor + 1, 0))]
        return [(">", low)]

    if op == "<=":
        if minor is None:
            return [("<", (major + 1, 0, 0))]
        if patch is None:
            return [("<", (major, minor + 1, 0))]
        return [("<=", low)]

    raise ValueError(f"Unknown operator: {op!r}")  # pragma: no cover


def _parse_set(raw: str) -> list[_Comparator]:
    """Parse one ``||`` alternative into a conjunction of comparators."""
    hyphen = _HYPHEN_RE.match(raw)
    if hyphen:
        return (
            _desugar(">=", *_parse_atom(hyphen.group("low"))[1:])
            + _desugar("<=", *_parse_atom(hyphen.group("high"))[1:])
        )

    tokens = raw.replace(",", " ").split()
    comparators: list[_Comparator] = []
    pending = ""
    for token in tokens:
        if token in _BARE_OPERATORS:
            pending = token
            continue
        comparators.extend(_desugar(*_parse_atom(pending + token)))
        pending = ""
    if pending:
        raise ValueError(f"Dangling operator {pending!r} in range {raw!r}")
    return comparators


def _compare(op: str, version: _Triple, target: _Triple) -> bool:
    if op == "==":
        return version == target
    if op == "!=":
        return version != target
    if op == ">=":
        return version >= target
    if op == "<=":
        return version <= target
    if op == ">":
        return version > target
    if op == "<":
        return version < target
    raise ValueError(f"Unknown operator: {op!r}")  # pragma: no cover


# ---------------------------------------------------------------------------
# VersionRange
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VersionRange:
    """An npm version range such as ``^5.0.0`` or ``>=1.2 <2 || 3.x``.

    The range is parsed on construction, so an invalid range fails fast.

    Attributes:
        raw: The range string as written in the manifest or request.

    Raises:
        ValueError: If ``raw`` is not valid range syntax.
    """

    raw: str
    _alternatives: list[list[_Comparator]] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        alternatives = [_parse_set(part) for part in self.raw.split("||")]
        object.__setattr__(self, "_alternatives", alternatives)

    def satisfies(self, version: str) -> bool:
        """Check whether ``version`` falls inside this range.

        Args:
            version: A full semantic version string.

        Returns:
            True if any ``||`` alternative accepts the version. A
            pre-release is accepted only when the range is exactly that
            version.

        Raises:
            ValueError: If *version* is not a valid semantic version.
        """
        major, minor, patch, pre = parse_version(version)
        if pre:
            exact = self.raw.strip().lstrip("=v")
            return exact.split("+", 1)[0] == version.strip().lstrip("=v").split("+", 1)[0]

        triple = (major, minor, patch)
        return any(
            all(_compare(op, triple, target) for op, target in comparators)
            for comparators in self._alternatives
        )

    def __str__(self) -> str:
        return self.raw


def max_satisfying(versions: Iterable[str], raw: str) -> str | None:
    """Return the highest version in ``versions`` that satisfies ``raw``.

    Strings that are not valid semantic versions are ignored, as
    registries occasionally carry legacy version keys.

    Args:
        versions: Candidate version strings (e.g., packument ``versions`` keys).
        raw: The npm range to satisfy.

    Returns:
        The best match, or None when nothing satisfies the range.

    Raises:
        ValueError: If ``raw`` is not valid range syntax.
    """
    version_range = VersionRange(raw)
    best: str | None = None
    for candidate in versions:
        try:
            if not version_range.satisfies(candidate):
                continue
        except ValueError:
            continue
        if best is None or _version_key(candidate) > _version_key(best):
            best = candidate
    return best
