"""Semantic version triples and the commit-driven bump calculation."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

from .commits import ChangeClass, CommitMessage, classify
from .errors import MalformedVersion

# Title that lets a 0.x project take the normal breaking-change path once.
RELEASE_MARKER = "feat!: release 1.0"

_VERSION_PATTERN = re.compile(r"([0-9]+)\.([0-9]+)\.([0-9]+)")


@dataclass(frozen=True, order=True)
class Version:
    """A ``major.minor.patch`` triple ordered lexicographically."""

    major: int
    minor: int
    patch: int

    def __post_init__(self) -> None:
        if min(self.major, self.minor, self.patch) < 0:
            raise MalformedVersion(f"version components must be non-negative ({self})")

    @classmethod
    def parse(cls, value: object, *, source: str = "version") -> "Version":
        """Parse ``X.Y.Z``; anything else raises ``MalformedVersion``."""
        if not isinstance(value, str):
            raise MalformedVersion(f"{source} has a non-string version ({value!r})")
        match = _VERSION_PATTERN.fullmatch(value)
        if match is None:
            raise MalformedVersion(f"{source} has an invalid version ({value})")
        major, minor, patch = (int(part) for part in match.groups())
        return cls(major, minor, patch)

    def component(self, name: str) -> int:
        if name not in ("major", "minor", "patch"):
            raise ValueError('only "major", "minor" and "patch" are accepted')
        return getattr(self, name)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def compute_version(base: Version, commits: Iterable[CommitMessage]) -> Version:
    """Fold the classified commits onto ``base`` and return the next version.

    Every commit is classified; the batch is reduced to three flags and the
    strongest one decides the bump. Projects below 1.0 treat a breaking change
    as a minor bump unless the batch contains the literal release marker title.
    """
    saw_breaking = saw_feature = saw_patch = False
    saw_release_marker = False
    for message in commits:
        change = classify(message)
        saw_breaking |= change is ChangeClass.BREAKING
        saw_feature |= change is ChangeClass.FEATURE
        saw_patch |= change is ChangeClass.PATCH
        saw_release_marker |= message.title.strip() == RELEASE_MARKER

    if saw_breaking:
        if base.major == 0 and not saw_release_marker:
            return Version(0, base.minor + 1, 0)
        return Version(base.major + 1, 0, 0)
    if saw_feature:
        return Version(base.major, base.minor + 1, 0)
    if saw_patch:
        return Version(base.major, base.minor, base.patch + 1)
    return base


__all__ = ["RELEASE_MARKER", "Version", "compute_version"]
