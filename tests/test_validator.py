"""Tests for the read-only CI validation pipeline."""

from __future__ import annotations

import pytest

from versync.config import LintConfig, ManifestReference, VersyncConfig
from versync.context import InvocationContext, Stage
from versync.errors import (
    CommitLintFailure,
    ExternalCommandFailure,
    ManifestMismatch,
    UnsignedCommit,
    VersionMismatch,
)
from versync.git.repository import Repository
from versync.manifests import ManifestSynchronizer
from versync.validator import CIValidator
from versync.version import Version

MANIFESTS = [
    ManifestReference(path="package.json", kind="json"),
    ManifestReference(path="Cargo.toml", kind="toml"),
]


def _validator(fake_git, *, lint=None, environ=None) -> CIValidator:  # type: ignore[no-untyped-def]
    config = VersyncConfig(root=fake_git.root, manifests=list(MANIFESTS), lint=lint or LintConfig())
    context = InvocationContext.from_environ(Stage.CHECK, environ or {"CI": "true"}, config)
    repository = Repository(fake_git.root, fake_git)
    synchronizer = ManifestSynchronizer(repository, config.manifests, fake_git)
    return CIValidator(config, context, repository, synchronizer, fake_git)


def _history(fake_git, repo_builder, base, head_json, head_toml, commits):  # type: ignore[no-untyped-def]
    fake_git.set_file(fake_git.ancestor, "package.json", repo_builder.package_json(base))
    fake_git.set_file(fake_git.ancestor, "Cargo.toml", repo_builder.cargo_toml(base))
    for title, signed in commits:
        fake_git.add_commit(title, signed=signed)
    fake_git.set_file(fake_git.head, "package.json", repo_builder.package_json(head_json))
    fake_git.set_file(fake_git.head, "Cargo.toml", repo_builder.cargo_toml(head_toml))


def test_validator_accepts_consistent_branch(fake_git, repo_builder) -> None:  # type: ignore[no-untyped-def]
    _history(
        fake_git,
        repo_builder,
        "1.2.3",
        "1.3.0",
        "1.3.0",
        [("fix(parser): handle empty input", True), ("feat: add cache layer", True)],
    )

    version = _validator(fake_git).run()

    assert version == Version(1, 3, 0)
    assert fake_git.calls[0] == ["git", "fetch", "--all", "--depth=150"]
    assert fake_git.calls[1] == ["git", "rev-parse", "HEAD"]
    assert fake_git.calls[2] == ["git", "merge-base", "origin/main", fake_git.head]
    # nothing is written or staged
    assert fake_git.commands("git", "add") == []
    assert fake_git.commands("git", "commit") == []


def test_validator_uses_pinned_commit(fake_git, repo_builder) -> None:  # type: ignore[no-untyped-def]
    _history(fake_git, repo_builder, "1.2.3", "1.2.4", "1.2.4", [("fix: bug", True)])

    _validator(fake_git, environ={"CI": "1", "CI_COMMIT_SHA": fake_git.head}).run()

    assert ["git", "rev-parse", "HEAD"] not in fake_git.calls


def test_validator_rejects_manifest_mismatch(fake_git, repo_builder) -> None:  # type: ignore[no-untyped-def]
    _history(fake_git, repo_builder, "1.2.3", "1.2.3", "1.2.4", [("fix: bug", True)])

    with pytest.raises(ManifestMismatch) as excinfo:
        _validator(fake_git).run()

    assert excinfo.value.readings == {"package.json": "1.2.3", "Cargo.toml": "1.2.4"}


def test_validator_rejects_wrong_bump(fake_git, repo_builder) -> None:  # type: ignore[no-untyped-def]
    _history(fake_git, repo_builder, "1.2.3", "1.2.4", "1.2.4", [("feat: add cache layer", True)])

    with pytest.raises(VersionMismatch) as excinfo:
        _validator(fake_git).run()

    assert excinfo.value.expected == "1.3.0"
    assert excinfo.value.found == "1.2.4"
    assert "1.3.0" in str(excinfo.value) and "1.2.4" in str(excinfo.value)


def test_validator_stops_at_first_unsigned_commit(fake_git, repo_builder) -> None:  # type: ignore[no-untyped-def]
    _history(
        fake_git,
        repo_builder,
        "1.2.3",
        "1.2.4",
        "1.2.4",
        [("fix: one", True), ("fix: two", False), ("fix: three", False)],
    )
    first_unsigned = fake_git.branch_commits[1]
    last = fake_git.branch_commits[2]

    with pytest.raises(UnsignedCommit) as excinfo:
        _validator(fake_git).run()

    assert excinfo.value.commit_hash == first_unsigned
    signature_checks = [call for call in fake_git.calls if "--show-signature" in call]
    assert [call[-1] for call in signature_checks] == fake_git.branch_commits[:2]
    assert all(call[-1] != last for call in signature_checks)
    # version checks never ran
    assert ["git", "show", f"{fake_git.head}:package.json"] not in fake_git.calls


def test_validator_rejects_bad_commit_messages(fake_git, repo_builder) -> None:  # type: ignore[no-untyped-def]
    _history(fake_git, repo_builder, "1.2.3", "1.2.3", "1.2.3", [("did some stuff", True)])

    with pytest.raises(CommitLintFailure) as excinfo:
        _validator(fake_git).run()

    assert any("header-format" in problem for problem in excinfo.value.problems)
    assert not [call for call in fake_git.calls if "--show-signature" in call]


def test_validator_delegates_to_external_linter(fake_git, repo_builder) -> None:  # type: ignore[no-untyped-def]
    _history(fake_git, repo_builder, "1.2.3", "1.2.3", "1.2.3", [("did some stuff", True)])
    lint = LintConfig(command=["npx", "commitlint", "--from", "{from}", "--to", "{to}"])

    assert _validator(fake_git, lint=lint).run() == Version(1, 2, 3)

    assert fake_git.commands("npx") == [
        ["npx", "commitlint", "--from", fake_git.ancestor, "--to", fake_git.head]
    ]


def test_validator_external_linter_failure_is_fatal(fake_git, repo_builder) -> None:  # type: ignore[no-untyped-def]
    _history(fake_git, repo_builder, "1.2.3", "1.2.4", "1.2.4", [("fix: bug", True)])
    fake_git.fail_on("npx")
    lint = LintConfig(command=["npx", "commitlint", "--from", "{from}"])

    with pytest.raises(ExternalCommandFailure):
        _validator(fake_git, lint=lint).run()


def test_validator_empty_range_keeps_base(fake_git, repo_builder) -> None:  # type: ignore[no-untyped-def]
    _history(fake_git, repo_builder, "0.9.0", "0.9.0", "0.9.0", [])

    assert _validator(fake_git).run() == Version(0, 9, 0)


def test_validator_release_marker(fake_git, repo_builder) -> None:  # type: ignore[no-untyped-def]
    _history(fake_git, repo_builder, "0.3.1", "1.0.0", "1.0.0", [("feat!: release 1.0", True)])

    assert _validator(fake_git).run() == Version(1, 0, 0)
