"""Read-only CI pipeline guarding the trunk invariants."""

from __future__ import annotations

from typing import Dict, List, Sequence

from .commits import CommitMessage
from .config import VersyncConfig
from .context import InvocationContext
from .errors import CommitLintFailure, ManifestMismatch, UnsignedCommit, VersionMismatch
from .git.repository import CommitRange, Repository
from .lint import CommitLinter
from .logging import get_logger
from .manifests import ManifestSynchronizer
from .process import Runner
from .version import Version, compute_version


class CIValidator:
    """Re-derives the expected version and rejects inconsistent change sets.

    Nothing is written: the validator only reads history and manifests. Each
    step either passes or raises a ``FatalError`` that stops the pipeline.
    """

    def __init__(
        self,
        config: VersyncConfig,
        context: InvocationContext,
        repository: Repository,
        synchronizer: ManifestSynchronizer,
        runner: Runner,
        linter: CommitLinter | None = None,
    ) -> None:
        self.config = config
        self.context = context
        self.repository = repository
        self.synchronizer = synchronizer
        self._runner = runner
        self.linter = linter or CommitLinter(config.lint)
        self.logger = get_logger("validator")

    def run(self) -> Version:
        """Execute every check in order and return the validated version."""
        # Shallow CI clones need trunk history to compare branches.
        self.repository.fetch(self.config.fetch.depth)

        target = self.context.commit_ref or self.repository.head()
        commit_range = self.repository.commit_range(self.context.trunk_ref, target)
        self.logger.info(
            "Validating %d commit(s) between %s and %s",
            len(commit_range.hashes),
            commit_range.ancestor[:12],
            target[:12],
        )
        messages = self.repository.messages(commit_range.hashes)

        self.check_commit_messages(commit_range, messages)
        self.check_commit_signatures(commit_range.hashes)
        version = self.check_versions(commit_range, messages)
        self.logger.info("Finished git checks (version %s)", version)
        return version

    def check_commit_messages(
        self, commit_range: CommitRange, messages: Sequence[CommitMessage]
    ) -> None:
        self.logger.info("Validating commit messages")
        command = self.config.lint.command
        if command:
            argv = [
                part.replace("{from}", commit_range.ancestor).replace("{to}", commit_range.target)
                for part in command
            ]
            self._runner(argv, cwd=self.repository.root, env=None, capture_output=False)
            return

        problems = self.linter.lint(zip(commit_range.hashes, messages))
        if problems:
            for problem in problems:
                self.logger.error("%s", problem)
            raise CommitLintFailure([str(problem) for problem in problems])

    def check_commit_signatures(self, hashes: Sequence[str]) -> None:
        """Stop at the first commit, in history order, that carries no signature."""
        self.logger.info("Checking that commits are signed (but not verifying signatures)")
        for commit_hash in hashes:
            if not self.repository.is_signed(commit_hash):
                raise UnsignedCommit(commit_hash)

    def check_versions(
        self, commit_range: CommitRange, messages: Sequence[CommitMessage]
    ) -> Version:
        readings = self.synchronizer.read_versions(commit_range.target)
        found = self._consistent_version(readings)

        base = self.synchronizer.read_version(self.synchronizer.manifests[0], commit_range.ancestor)
        expected = compute_version(base, messages)
        if expected != found:
            raise VersionMismatch(str(expected), str(found))
        return found

    @staticmethod
    def _consistent_version(readings: Dict[str, Version]) -> Version:
        distinct: List[Version] = []
        for version in readings.values():
            if version not in distinct:
                distinct.append(version)
        if len(distinct) != 1:
            raise ManifestMismatch({path: str(version) for path, version in readings.items()})
        return distinct[0]


__all__ = ["CIValidator"]
