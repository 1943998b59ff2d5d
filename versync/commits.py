"""Conventional-commit parsing and change classification."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

FEATURE_TYPE = "feat"

# Conventional types that only warrant a patch release.
PATCH_TYPES = (
    "fix",
    "docs",
    "style",
    "refactor",
    "perf",
    "test",
    "build",
    "ci",
    "chore",
    "revert",
)

COMMIT_TYPES = (FEATURE_TYPE, *PATCH_TYPES)

BREAKING_TOKEN = "BREAKING CHANGE"

_HEADER_PATTERN = re.compile(
    r"^(?P<type>[A-Za-z]+)(?:\((?P<scope>[^()\r\n]*)\))?(?P<bang>!)?:(?P<subject>.*)$"
)


class ChangeClass(IntEnum):
    """How much a commit moves the version; higher values win."""

    NONE = 0
    PATCH = 1
    FEATURE = 2
    BREAKING = 3


@dataclass(frozen=True)
class CommitMessage:
    """Title and body of one commit, as recorded by git."""

    title: str
    body: str = ""


@dataclass(frozen=True)
class ConventionalHeader:
    """The parsed ``type(scope)!: subject`` title of a commit."""

    type: str
    scope: Optional[str]
    breaking: bool
    subject: str


def parse_header(title: str) -> ConventionalHeader | None:
    """Split a conventional title into its parts, or ``None`` if it does not match."""
    match = _HEADER_PATTERN.match(title)
    if match is None:
        return None
    return ConventionalHeader(
        type=match.group("type"),
        scope=match.group("scope"),
        breaking=match.group("bang") is not None,
        subject=match.group("subject").strip(),
    )


def classify(message: CommitMessage) -> ChangeClass:
    """Return the highest-ranked change class the commit message matches."""
    header = parse_header(message.title)
    if (header is not None and header.breaking) or BREAKING_TOKEN in message.body:
        return ChangeClass.BREAKING
    if header is None:
        return ChangeClass.NONE
    if header.type == FEATURE_TYPE:
        return ChangeClass.FEATURE
    if header.type in PATCH_TYPES:
        return ChangeClass.PATCH
    return ChangeClass.NONE


__all__ = [
    "BREAKING_TOKEN",
    "COMMIT_TYPES",
    "ChangeClass",
    "CommitMessage",
    "ConventionalHeader",
    "FEATURE_TYPE",
    "PATCH_TYPES",
    "classify",
    "parse_header",
]
