"""Built-in commit message linter mirroring the conventional commitlint preset."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Tuple

from .commits import COMMIT_TYPES, CommitMessage, parse_header
from .config import LintConfig


@dataclass(frozen=True)
class LintProblem:
    commit: str
    rule: str
    detail: str

    def __str__(self) -> str:
        return f"{self.commit[:10]} [{self.rule}] {self.detail}"


class CommitLinter:
    """Checks commit titles and bodies against the configured limits."""

    def __init__(self, config: LintConfig | None = None) -> None:
        self.config = config or LintConfig()

    def lint(self, commits: Iterable[Tuple[str, CommitMessage]]) -> List[LintProblem]:
        problems: List[LintProblem] = []
        for commit_hash, message in commits:
            for rule, detail in self.check(message):
                problems.append(LintProblem(commit=commit_hash, rule=rule, detail=detail))
        return problems

    def check(self, message: CommitMessage) -> List[Tuple[str, str]]:
        """Return ``(rule, detail)`` pairs for every violated rule."""
        title = message.title
        if title.startswith("Merge "):
            return []

        cfg = self.config
        issues: List[Tuple[str, str]] = []
        if len(title) < cfg.header_min_length:
            issues.append(("header-min-length", f"header must be at least {cfg.header_min_length} characters"))
        if len(title) > cfg.header_max_length:
            issues.append(("header-max-length", f"header must not exceed {cfg.header_max_length} characters"))

        header = parse_header(title)
        if header is None:
            issues.append(("header-format", f"header must look like 'type(scope): subject' ({title!r})"))
        else:
            issues.extend(self._check_header(header.type, header.subject))

        issues.extend(self._check_body(message.body))
        return issues

    def _check_header(self, commit_type: str, subject: str) -> List[Tuple[str, str]]:
        cfg = self.config
        issues: List[Tuple[str, str]] = []
        if commit_type != commit_type.lower():
            issues.append(("type-case", f"type must be lower-case ({commit_type})"))
        if commit_type.lower() not in COMMIT_TYPES:
            issues.append(("type-enum", f"type must be one of {', '.join(COMMIT_TYPES)} ({commit_type})"))
        if not subject:
            issues.append(("subject-empty", "subject may not be empty"))
            return issues
        if subject.endswith("."):
            issues.append(("subject-full-stop", "subject may not end with a full stop"))
        if len(subject) < cfg.subject_min_length:
            issues.append(("subject-min-length", f"subject must be at least {cfg.subject_min_length} characters"))
        if len(subject) > cfg.subject_max_length:
            issues.append(("subject-max-length", f"subject must not exceed {cfg.subject_max_length} characters"))
        return issues

    def _check_body(self, body: str) -> List[Tuple[str, str]]:
        limit = self.config.body_max_line_length
        issues: List[Tuple[str, str]] = []
        for number, line in enumerate(body.splitlines(), start=1):
            if len(line) <= limit or "://" in line:
                continue
            issues.append(("body-max-line-length", f"body line {number} exceeds {limit} characters"))
        return issues


__all__ = ["CommitLinter", "LintProblem"]
