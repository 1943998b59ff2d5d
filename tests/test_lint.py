"""Tests for the built-in commit message linter."""

from __future__ import annotations

from versync.commits import CommitMessage
from versync.config import LintConfig
from versync.lint import CommitLinter


def _rules(title: str, body: str = "", config: LintConfig | None = None) -> list[str]:
    return [rule for rule, _ in CommitLinter(config).check(CommitMessage(title=title, body=body))]


def test_clean_message_passes() -> None:
    assert _rules("feat(cli): add repo option", "Explains the option.\n\nRefs #12") == []


def test_header_format_required() -> None:
    assert "header-format" in _rules("added some things")


def test_unknown_type_rejected() -> None:
    assert _rules("feature: add things") == ["type-enum"]


def test_type_case() -> None:
    assert "type-case" in _rules("Feat: add things")


def test_header_length_limits() -> None:
    assert "header-min-length" in _rules("fix: ab")
    long_title = "fix: " + "x" * 70
    rules = _rules(long_title)
    assert "header-max-length" in rules
    assert "subject-max-length" in rules


def test_subject_rules() -> None:
    assert "subject-empty" in _rules("fix(core):")
    assert "subject-full-stop" in _rules("fix: handle input.")
    assert "subject-min-length" in _rules("fix(parser): ab")


def test_body_line_length_exempts_urls() -> None:
    long_line = "word " * 20
    url_line = "see https://example.com/" + "a" * 100

    assert _rules("fix: handle input", long_line) == ["body-max-line-length"]
    assert _rules("fix: handle input", url_line) == []


def test_merge_commits_are_skipped() -> None:
    assert _rules("Merge branch 'main' into feature/demo") == []


def test_limits_are_configurable() -> None:
    config = LintConfig(subject_max_length=100, header_max_length=120)

    assert _rules("fix: " + "x" * 80, config=config) == []


def test_lint_collects_problems_per_commit() -> None:
    linter = CommitLinter()
    problems = linter.lint(
        [
            ("a" * 40, CommitMessage(title="fix: fine subject")),
            ("b" * 40, CommitMessage(title="nope")),
        ]
    )

    assert [problem.commit for problem in problems] == ["b" * 40, "b" * 40]
    assert str(problems[0]).startswith("bbbbbbbbbb [")
