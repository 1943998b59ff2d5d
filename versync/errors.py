"""Error taxonomy shared by every versync component.

Errors are split at the type level: anything derived from ``FatalError``
aborts the running stage and surfaces as a non-zero exit, while
``RecoverableError`` subclasses are logged and the stage carries on.
"""

from __future__ import annotations

from typing import Mapping, Sequence


class VersyncError(Exception):
    """Base class for all versync errors."""


class FatalError(VersyncError):
    """Aborts the current stage; reported at the process boundary."""


class RecoverableError(VersyncError):
    """Logged and swallowed by the stage that raised it."""


class ConfigError(FatalError):
    """Raised when .versync.yml cannot be parsed or holds invalid values."""


class ExternalCommandFailure(FatalError):
    """An external command exited non-zero or produced unusable output."""

    def __init__(
        self,
        args: Sequence[str],
        returncode: int | None = None,
        stderr: str = "",
        *,
        reason: str | None = None,
    ) -> None:
        self.command = list(args)
        self.returncode = returncode
        self.stderr = stderr.strip()
        if reason is None:
            reason = f"exited with status {returncode}"
        message = f"`{' '.join(self.command)}` {reason}"
        if self.stderr:
            message = f"{message}\n{self.stderr}"
        super().__init__(message)


class MalformedVersion(FatalError):
    """A manifest version field is absent, not a string, or not ``X.Y.Z``."""


# Manifest readers raise the same condition under the name used by callers.
MalformedManifest = MalformedVersion


class ManifestMismatch(FatalError):
    """Two tracked manifests disagree on the version at one revision."""

    def __init__(self, readings: Mapping[str, str]) -> None:
        self.readings = dict(readings)
        listing = ", ".join(f"{path} ({version})" for path, version in self.readings.items())
        super().__init__(f"manifest versions differ: {listing}")


class VersionMismatch(FatalError):
    """The committed version is not the one derived from the commit history."""

    def __init__(self, expected: str, found: str) -> None:
        self.expected = expected
        self.found = found
        super().__init__(f"current version should be {expected}, but is {found}")


class UnsignedCommit(FatalError):
    """A commit in the validated range carries no signature annotation."""

    def __init__(self, commit_hash: str) -> None:
        self.commit_hash = commit_hash
        super().__init__(f"commit {commit_hash} is not signed")


class DirectTrunkCommit(FatalError):
    """A commit is being created directly on the trunk branch."""

    def __init__(self, branch: str) -> None:
        self.branch = branch
        super().__init__(f'making commits directly against "{branch}" is not allowed')


class CommitLintFailure(FatalError):
    """One or more commit messages in the range violate the message rules."""

    def __init__(self, problems: Sequence[str]) -> None:
        self.problems = list(problems)
        super().__init__(
            f"{len(self.problems)} commit message problem(s):\n" + "\n".join(self.problems)
        )


class MessagePreparationFailure(RecoverableError):
    """The interactive commit-message helper failed; the commit proceeds."""


__all__ = [
    "CommitLintFailure",
    "ConfigError",
    "DirectTrunkCommit",
    "ExternalCommandFailure",
    "FatalError",
    "MalformedManifest",
    "MalformedVersion",
    "ManifestMismatch",
    "MessagePreparationFailure",
    "RecoverableError",
    "UnsignedCommit",
    "VersionMismatch",
    "VersyncError",
]
