"""
Cargo semantic versions and version requirements.

Index versions follow SemVer 2.0 while ``packaging`` speaks PEP 440, so
versions are transformed before parsing and Cargo requirements are
translated into specifier sets with Cargo's bound rules.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import List, Optional, Sequence, Tuple

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version

from .errors import ParseError


_IDENTIFIERS = r"[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*"

_SEMVER_RE = re.compile(
    r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    rf"(?:-(?P<pre>{_IDENTIFIERS}))?"
    rf"(?:\+(?P<build>{_IDENTIFIERS}))?$"
)

_COMPARATOR_RE = re.compile(
    r"^(?P<op>\^|~|=|>=|<=|>|<)?\s*"
    r"(?P<major>\d+|[*xX])(?:\.(?P<minor>\d+|[*xX]))?(?:\.(?P<patch>\d+|[*xX]))?"
    rf"(?:-(?P<pre>{_IDENTIFIERS}))?"
    rf"(?:\+{_IDENTIFIERS})?$"
)

_PRE_TAGS = {
    "alpha": "a",
    "a": "a",
    "beta": "b",
    "b": "b",
    "rc": "rc",
    "c": "rc",
    "pre": "rc",
    "preview": "rc",
}

_WILDCARDS = ("*", "x", "X")


def transformation_pep440(version: str) -> str:
    """Transform a SemVer string into an equivalent PEP 440 string.

    Prerelease identifiers map onto PEP 440 prerelease segments (unknown
    tags become dev releases) and build metadata becomes a local label.

    Raises:
        ParseError: If the string is not a valid semantic version
    """
    match = _SEMVER_RE.match(version.strip())
    if not match:
        raise ParseError(f"Invalid semantic version: {version!r}")

    result = f"{match.group('major')}.{match.group('minor')}.{match.group('patch')}"

    pre = match.group("pre")
    if pre:
        tag = re.match(r"[A-Za-z]*", pre).group(0).lower()
        numbers = re.findall(r"\d+", pre)
        number = int(numbers[0]) if numbers else 0
        result += f"{_PRE_TAGS.get(tag, '.dev')}{number}"

    build = match.group("build")
    if build:
        local = re.sub(r"[^0-9A-Za-z]+", ".", build).strip(".")
        if local:
            result += f"+{local}"

    return result


@lru_cache(maxsize=None)
def parse_version(version: str) -> Version:
    """Parse a published crate version."""
    try:
        return Version(transformation_pep440(version))
    except InvalidVersion as exc:
        raise ParseError(f"Invalid semantic version: {version!r}") from exc


class VersionRequirement:
    """A Cargo version requirement backed by a packaging specifier set."""

    def __init__(self, text: str, specifiers: SpecifierSet, prereleases: bool = False) -> None:
        self.text = text
        self.specifiers = specifiers
        self.prereleases = prereleases

    def matches(self, version: Version) -> bool:
        return self.specifiers.contains(version, prereleases=self.prereleases)

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"VersionRequirement({self.text!r}, specifiers={str(self.specifiers)!r})"


def _format(parts: Sequence[int], pre: Optional[str] = None) -> str:
    major, minor, patch = (list(parts) + [0, 0])[:3]
    text = f"{major}.{minor}.{patch}"
    if pre:
        text = transformation_pep440(f"{text}-{pre}")
    return text


def _bump(parts: Sequence[int]) -> List[int]:
    """Increment the last given component of a partial version."""
    return list(parts[:-1]) + [parts[-1] + 1]


def _caret(parts: List[int], pre: str) -> List[str]:
    if parts[0] > 0 or len(parts) == 1:
        upper = [parts[0] + 1]
    elif parts[1] > 0 or len(parts) == 2:
        upper = [0, parts[1] + 1]
    else:
        upper = [0, 0, parts[2] + 1]
    return [f">={_format(parts, pre)}", f"<{_format(upper)}"]


def _tilde(parts: List[int], pre: str) -> List[str]:
    if len(parts) == 1:
        return [f">={_format(parts)}", f"<{_format([parts[0] + 1])}"]
    return [f">={_format(parts, pre)}", f"<{_format([parts[0], parts[1] + 1])}"]


def _exact(parts: List[int], pre: str) -> List[str]:
    if len(parts) == 3:
        return [f"=={_format(parts, pre)}"]
    return [f">={_format(parts)}", f"<{_format(_bump(parts))}"]


def _greater(parts: List[int], pre: str) -> List[str]:
    if len(parts) == 3:
        return [f">{_format(parts, pre)}"]
    return [f">={_format(_bump(parts))}"]


def _greater_equal(parts: List[int], pre: str) -> List[str]:
    return [f">={_format(parts, pre)}"]


def _less(parts: List[int], pre: str) -> List[str]:
    return [f"<{_format(parts, pre)}"]


def _less_equal(parts: List[int], pre: str) -> List[str]:
    if len(parts) == 3:
        return [f"<={_format(parts, pre)}"]
    return [f"<{_format(_bump(parts))}"]


_OPERATORS = {
    "^": _caret,
    "~": _tilde,
    "=": _exact,
    ">": _greater,
    ">=": _greater_equal,
    "<": _less,
    "<=": _less_equal,
}


def _comparator_specifiers(comparator: str) -> Tuple[List[str], bool]:
    """Translate one Cargo comparator into PEP 440 specifiers.

    Returns the specifiers and whether the comparator names a prerelease.
    """
    match = _COMPARATOR_RE.match(comparator)
    if not match:
        raise ParseError(f"Invalid version requirement: {comparator!r}")

    op = match.group("op") or ""
    parts: List[int] = []
    for key in ("major", "minor", "patch"):
        value = match.group(key)
        if value is None:
            break
        if value in _WILDCARDS:
            if not op:
                op = "="
            break
        parts.append(int(value))

    pre = match.group("pre")
    if pre and len(parts) < 3:
        raise ParseError(f"Prerelease requires a full version: {comparator!r}")
    if not parts:
        return [], False

    return _OPERATORS[op or "^"](parts, pre), bool(pre)


@lru_cache(maxsize=None)
def parse_requirement(text: str) -> VersionRequirement:
    """Parse a comma-separated Cargo version requirement.

    Raises:
        ParseError: If any comparator is malformed
    """
    stripped = text.strip()
    specifiers: List[str] = []
    prereleases = False

    if stripped:
        for comparator in stripped.split(","):
            comparator = comparator.strip()
            if not comparator:
                raise ParseError(f"Empty comparator in requirement: {text!r}")
            translated, has_pre = _comparator_specifiers(comparator)
            specifiers.extend(translated)
            prereleases = prereleases or has_pre

    try:
        specifier_set = SpecifierSet(",".join(specifiers))
    except InvalidSpecifier as exc:
        raise ParseError(f"Invalid version requirement: {text!r}") from exc

    return VersionRequirement(stripped or "*", specifier_set, prereleases)


ANY_REQUIREMENT = parse_requirement("*")
