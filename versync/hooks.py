"""Git hook stages that keep commits and manifests in sync.

Git calls three stages around every local commit:

``prepare-commit-msg``
    Launches the interactive commit-message helper, unless a rebase is in
    progress, the run is in CI, or the stage was suppressed by the amend
    issued from ``post-commit``.
``pre-commit``
    Rejects commits made directly on trunk. Version bookkeeping waits for
    ``post-commit`` so it sees the final list of commits.
``post-commit``
    Derives the next version from the branch history, writes it into every
    manifest and, if anything changed, amends the commit to include it.
"""

from __future__ import annotations

import os
import signal
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Any, Callable, Iterator, List, Optional, Sequence

from .config import ManifestReference, VersyncConfig
from .context import FROM_POST_COMMIT_ENV, SKIP_PREPARE_ENV, InvocationContext, Stage
from .errors import (
    DirectTrunkCommit,
    ExternalCommandFailure,
    FatalError,
    MessagePreparationFailure,
    RecoverableError,
)
from .git.repository import Repository
from .logging import get_logger
from .manifests import ManifestSynchronizer
from .process import Runner
from .version import Version, compute_version

HOOK_STAGES = (Stage.PREPARE_COMMIT_MSG, Stage.PRE_COMMIT, Stage.POST_COMMIT)

_HOOK_MARKER = "# installed by versync"
_HOOK_TEMPLATE = """#!/bin/sh
{marker}
exec versync hook {stage} "$@"
"""

TTY_PATH = "/dev/tty"


def _open_tty() -> IO[Any]:
    return open(TTY_PATH, "r")


class HookOrchestrator:
    """Runs one hook stage against a repository and its manifests."""

    def __init__(
        self,
        config: VersyncConfig,
        context: InvocationContext,
        repository: Repository,
        synchronizer: ManifestSynchronizer,
        runner: Runner,
        *,
        tty_opener: Callable[[], IO[Any]] = _open_tty,
    ) -> None:
        self.config = config
        self.context = context
        self.repository = repository
        self.synchronizer = synchronizer
        self._runner = runner
        self._tty_opener = tty_opener
        self.logger = get_logger("hooks")

    def run(self, stage: Stage, args: Sequence[str] = ()) -> None:
        if stage is Stage.PREPARE_COMMIT_MSG:
            self.prepare_commit_msg(*args[:2])
        elif stage is Stage.PRE_COMMIT:
            self.pre_commit()
        elif stage is Stage.POST_COMMIT:
            self.post_commit()
        else:
            raise ValueError(f"{stage.value} is not a hook stage")

    # ------------------------------------------------------------------
    # Stages

    def prepare_commit_msg(
        self, message_file: Optional[str] = None, source: Optional[str] = None
    ) -> None:
        """Help compose the commit message; never blocks the commit."""
        if self.context.skip_prepare_commit_msg:
            self.logger.debug("Message preparation suppressed")
            return
        if self.repository.rebase_in_progress():
            self.logger.debug("Rebase in progress; skipping message preparation")
            return
        if self.context.in_ci:
            self.logger.debug("Running in CI; skipping interactive helper")
            return

        self.logger.debug(
            "Preparing commit message (file=%s, source=%s)", message_file, source or "none"
        )
        workdir = (self.repository.root / self.config.helper.workdir).resolve()
        try:
            with transient_link(workdir / ".git", self.repository.root / ".git"):
                self._run_helper(workdir)
        except RecoverableError as exc:
            self.logger.warning("Commit message helper failed: %s", exc)

    def pre_commit(self) -> None:
        """Refuse trunk commits; sync versions only inside the post-commit amend."""
        branch = self.repository.current_branch()
        if self.context.is_trunk(branch):
            raise DirectTrunkCommit(branch)
        if not self.context.from_post_commit:
            return
        self.sync_manifests()

    def post_commit(self) -> bool:
        """Fold the derived version into the commit just created.

        Returns ``True`` when the commit was amended.
        """
        changed = self.sync_manifests()
        if not changed:
            self.logger.debug("Manifests already carry the derived version")
            return False

        paths = self.synchronizer.paths_for(changed)
        try:
            self.repository.amend(
                paths, env={SKIP_PREPARE_ENV: "1", FROM_POST_COMMIT_ENV: "1"}
            )
        except ExternalCommandFailure:
            self.logger.error(
                "Manifests were updated and staged but the amend failed; "
                "run `git commit --amend --no-edit` to include them"
            )
            raise
        self.logger.info("Updated previous commit to use the correct package version")
        return True

    # ------------------------------------------------------------------
    # Version sync

    def compute_next_version(self) -> Version:
        """Version the current branch should carry, derived from trunk history."""
        if self.config.fetch.on_hook:
            self.repository.fetch(self.config.fetch.depth)
        head = self.repository.head()
        commit_range = self.repository.commit_range(self.context.trunk_ref, head)
        base = self.synchronizer.read_version(self.synchronizer.manifests[0], commit_range.ancestor)
        messages = self.repository.messages(commit_range.hashes)
        version = compute_version(base, messages)
        self.logger.debug(
            "Derived %s from %s over %d commit(s)", version, base, len(commit_range.hashes)
        )
        return version

    def sync_manifests(self) -> List[ManifestReference]:
        changed = self.synchronizer.synchronize(self.compute_next_version())
        if changed:
            self.logger.info("Updated package version")
        return changed

    # ------------------------------------------------------------------
    # Helpers

    def _run_helper(self, workdir: Path) -> None:
        command = self.config.helper.command
        try:
            tty = self._tty_opener()
        except OSError as exc:
            raise MessagePreparationFailure(f"no terminal available: {exc}") from exc
        with tty:
            try:
                self._runner(command, cwd=workdir, env=None, capture_output=False, stdin=tty)
            except ExternalCommandFailure as exc:
                raise MessagePreparationFailure(str(exc)) from exc


@contextmanager
def transient_link(link: Path, target: Path) -> Iterator[bool]:
    """Expose ``target`` at ``link`` for the duration of the block.

    Yields whether a link was created. The link is removed on every exit
    path, including termination signals, since a dangling link breaks the
    next invocation.
    """
    if link.resolve() == target.resolve() and not link.is_symlink():
        yield False
        return
    if link.exists() and not link.is_symlink():
        raise MessagePreparationFailure(f"{link} exists and is not a link; leaving it alone")
    try:
        link.unlink(missing_ok=True)
        link.symlink_to(target)
    except OSError as exc:
        raise MessagePreparationFailure(f"could not link {link} to {target}: {exc}") from exc
    try:
        with _terminate_as_exit():
            yield True
    finally:
        link.unlink(missing_ok=True)


@contextmanager
def _terminate_as_exit() -> Iterator[None]:
    """Turn SIGTERM/SIGHUP into ``SystemExit`` so ``finally`` blocks run."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum: int, _frame: object) -> None:
        raise SystemExit(128 + signum)

    watched = [signal.SIGTERM]
    if hasattr(signal, "SIGHUP"):
        watched.append(signal.SIGHUP)
    previous = {signum: signal.signal(signum, _handler) for signum in watched}
    try:
        yield
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


def install_hooks(hooks_dir: Path, *, force: bool = False) -> List[Path]:
    """Write the versync hook scripts into ``hooks_dir``.

    Existing hooks not written by versync are left alone unless ``force``.
    """
    hooks_dir.mkdir(parents=True, exist_ok=True)
    installed: List[Path] = []
    for stage in HOOK_STAGES:
        path = hooks_dir / stage.value
        if path.exists() and not force:
            existing = path.read_text(encoding="utf-8", errors="replace")
            if _HOOK_MARKER not in existing:
                raise FatalError(f"{path} already exists; rerun with --force to replace it")
        path.write_text(
            _HOOK_TEMPLATE.format(marker=_HOOK_MARKER, stage=stage.value), encoding="utf-8"
        )
        os.chmod(path, 0o755)
        installed.append(path)
    return installed


__all__ = ["HOOK_STAGES", "HookOrchestrator", "install_hooks", "transient_link"]
