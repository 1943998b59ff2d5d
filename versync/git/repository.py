"""Read-only history queries plus the two mutations versync needs (stage, amend)."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Mapping, Sequence

from ..commits import CommitMessage
from ..errors import ExternalCommandFailure
from ..logging import get_logger
from ..process import Runner

_HASH_PATTERN = re.compile(r"[0-9a-f]{7,64}")
_SIGNATURE_PATTERN = re.compile(r"^gpg: Signature made", re.MULTILINE)

# git show must never page inside a hook or CI job.
_NO_PAGER = {"GIT_PAGER": ""}


@dataclass(frozen=True)
class CommitRange:
    """Commits reachable from ``target`` but not from ``ancestor``, oldest first."""

    ancestor: str
    target: str
    hashes: Sequence[str]


class Repository:
    """Thin wrapper over the git CLI; every failure propagates to the caller."""

    def __init__(self, root: Path, runner: Runner) -> None:
        self.root = root
        self._runner = runner
        self.logger = get_logger("git")

    # ------------------------------------------------------------------
    # History queries

    def fetch(self, depth: int = 150) -> None:
        """Fetch every remote so branches can be compared against trunk."""
        self.logger.debug("Fetching remotes (depth=%d)", depth)
        self._git("fetch", "--all", f"--depth={depth}")

    def common_ancestor(self, ref_a: str, ref_b: str) -> str:
        return self._git_hash("merge-base", ref_a, ref_b)

    def commits_between(self, from_ref: str, to_ref: str) -> List[str]:
        """List hashes in ``from_ref..to_ref``, oldest first."""
        output = self._git("rev-list", "--reverse", f"{from_ref}..{to_ref}")
        hashes = output.split()
        for commit_hash in hashes:
            self._check_hash(commit_hash, ["rev-list", f"{from_ref}..{to_ref}"])
        return hashes

    def commit_range(self, trunk_ref: str, target: str) -> CommitRange:
        ancestor = self.common_ancestor(trunk_ref, target)
        return CommitRange(
            ancestor=ancestor,
            target=target,
            hashes=tuple(self.commits_between(ancestor, target)),
        )

    def title(self, commit_hash: str) -> str:
        return self._git("show", "-s", "--format=%s", commit_hash, env=_NO_PAGER).strip()

    def body(self, commit_hash: str) -> str:
        return self._git("show", "-s", "--format=%b", commit_hash, env=_NO_PAGER).strip()

    def message(self, commit_hash: str) -> CommitMessage:
        return CommitMessage(title=self.title(commit_hash), body=self.body(commit_hash))

    def messages(self, hashes: Iterable[str]) -> List[CommitMessage]:
        return [self.message(commit_hash) for commit_hash in hashes]

    def is_signed(self, commit_hash: str) -> bool:
        """True when git reports a signature on the commit; trust is not checked."""
        output = self._git(
            "show", "-s", "--show-signature", "--format=", commit_hash, env=_NO_PAGER
        )
        return _SIGNATURE_PATTERN.search(output) is not None

    def show_file(self, revision: str, path: str) -> str:
        return self._git("show", f"{revision}:{path}", env=_NO_PAGER)

    def head(self) -> str:
        return self._git_hash("rev-parse", "HEAD")

    def current_branch(self) -> str:
        return self._git_line("rev-parse", "--abbrev-ref", "HEAD")

    def git_dir(self) -> Path:
        git_dir = Path(self._git_line("rev-parse", "--git-dir"))
        return git_dir if git_dir.is_absolute() else self.root / git_dir

    def rebase_in_progress(self) -> bool:
        git_dir = self.git_dir()
        return (git_dir / "rebase-merge").exists() or (git_dir / "rebase-apply").exists()

    # ------------------------------------------------------------------
    # Mutations

    def stage(self, paths: Sequence[str]) -> None:
        if not paths:
            return
        self._git("add", "--", *paths)

    def amend(self, paths: Sequence[str], *, env: Mapping[str, str] | None = None) -> None:
        """Fold ``paths`` into HEAD, reusing its message and skipping verification hooks."""
        self._git("commit", "--no-verify", "--amend", "-C", "HEAD", "--", *paths, env=env)

    # ------------------------------------------------------------------
    # Helpers

    def _git(self, *args: str, env: Mapping[str, str] | None = None) -> str:
        return self._runner(["git", *args], cwd=self.root, env=env, capture_output=True)

    def _git_line(self, *args: str) -> str:
        output = self._git(*args).strip()
        if not output or "\n" in output:
            raise ExternalCommandFailure(
                ["git", *args], reason=f"produced unusable output ({output!r})"
            )
        return output

    def _git_hash(self, *args: str) -> str:
        commit_hash = self._git_line(*args)
        self._check_hash(commit_hash, list(args))
        return commit_hash

    @staticmethod
    def _check_hash(value: str, args: List[str]) -> None:
        if _HASH_PATTERN.fullmatch(value) is None:
            raise ExternalCommandFailure(
                ["git", *args], reason=f"returned an invalid commit hash ({value!r})"
            )


def discover_root(cwd: Path, runner: Runner) -> Path:
    """Return the repository root containing ``cwd``.

    While the commit-message helper runs, a helper subdirectory holds a
    symbolic ``.git`` pointing at the real one; resolve through it.
    """
    output = runner(
        ["git", "rev-parse", "--show-toplevel"], cwd=cwd, env=None, capture_output=True
    ).strip()
    if not output:
        raise ExternalCommandFailure(
            ["git", "rev-parse", "--show-toplevel"], reason="produced no output"
        )
    root = Path(output)
    git_entry = root / ".git"
    if git_entry.is_symlink():
        return git_entry.resolve().parent
    return root


__all__ = ["CommitRange", "Repository", "discover_root"]
