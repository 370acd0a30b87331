#!/usr/bin/env python3
"""
Semantic versions for cached plugins.

This module parses and orders MAJOR.MINOR.PATCH[-PRERELEASE][+BUILD]
version strings following SemVer 2.0.0 precedence rules.
"""

import re
from dataclasses import dataclass
from functools import total_ordering
from typing import Optional, Tuple, Union


SEMVER_PATTERN = re.compile(
    r'^v?(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)'
    r'(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?'
    r'(?:\+([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$'
)


def _compare_identifiers(left: Tuple[str, ...], right: Tuple[str, ...]) -> int:
    """Compare two prerelease identifier lists per SemVer precedence."""
    for a, b in zip(left, right):
        if a == b:
            continue
        a_numeric, b_numeric = a.isdigit(), b.isdigit()
        if a_numeric and b_numeric:
            return -1 if int(a) < int(b) else 1
        if a_numeric:
            return -1
        if b_numeric:
            return 1
        return -1 if a < b else 1
    if len(left) == len(right):
        return 0
    return -1 if len(left) < len(right) else 1


@total_ordering
@dataclass(frozen=True)
class SemanticVersion:
    """A parsed semantic version. Build metadata does not affect equality or ordering."""
    major: int
    minor: int
    patch: int
    prerelease: Tuple[str, ...] = ()
    build: Tuple[str, ...] = ()

    @classmethod
    def parse(cls, version: str) -> "SemanticVersion":
        """
        Parse a semantic version string.

        Surrounding whitespace and a leading "v" are tolerated.

        Args:
            version: Version string (e.g., "v1.2.3-alpha.1+build.123")

        Returns:
            Parsed version

        Raises:
            ValueError: If the string is not a valid semantic version
        """
        if not isinstance(version, str):
            raise ValueError(f"Invalid semantic version: {version!r}")

        match = SEMVER_PATTERN.match(version.strip())
        if not match:
            raise ValueError(f"Invalid semantic version: {version!r}")

        major, minor, patch, prerelease, build = match.groups()
        prerelease_ids = tuple(prerelease.split(".")) if prerelease else ()
        for identifier in prerelease_ids:
            if identifier.isdigit() and len(identifier) > 1 and identifier.startswith("0"):
                raise ValueError(f"Invalid semantic version: {version!r} "
                                 f"(numeric prerelease identifier with leading zero)")

        return cls(
            major=int(major),
            minor=int(minor),
            patch=int(patch),
            prerelease=prerelease_ids,
            build=tuple(build.split(".")) if build else (),
        )

    @classmethod
    def coerce(cls, version: Union[str, "SemanticVersion", None]) -> Optional["SemanticVersion"]:
        """Return version as a SemanticVersion, parsing strings; None passes through."""
        if version is None or isinstance(version, SemanticVersion):
            return version
        return cls.parse(version)

    def _key(self) -> Tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._key() == other._key() and self.prerelease == other.prerelease

    def __hash__(self) -> int:
        return hash((self._key(), self.prerelease))

    def __lt__(self, other: "SemanticVersion") -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        if self._key() != other._key():
            return self._key() < other._key()
        # A prerelease sorts before its release.
        if not self.prerelease or not other.prerelease:
            return bool(self.prerelease) and not other.prerelease
        return _compare_identifiers(self.prerelease, other.prerelease) < 0

    def __str__(self) -> str:
        version = f"{self.major}.{self.minor}.{self.patch}"

        if self.prerelease:
            version += "-" + ".".join(self.prerelease)

        if self.build:
            version += "+" + ".".join(self.build)

        return version
