"""External command execution shared by every versync component."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import IO, Any, Iterable, Mapping, Protocol

from .errors import ExternalCommandFailure
from .logging import get_logger

logger = get_logger("process")


class Runner(Protocol):
    """Callable used to execute external commands.

    Components accept any callable with this signature so tests can swap in a
    scripted fake instead of spawning git.
    """

    def __call__(
        self,
        args: Iterable[str],
        *,
        cwd: Path,
        env: Mapping[str, str] | None = None,
        capture_output: bool = True,
        stdin: IO[Any] | None = None,
    ) -> str: ...


class CommandRunner:
    """Runs commands with a fixed base environment plus per-call overrides."""

    def __init__(self, base_env: Mapping[str, str]) -> None:
        self._base_env = dict(base_env)

    def __call__(
        self,
        args: Iterable[str],
        *,
        cwd: Path,
        env: Mapping[str, str] | None = None,
        capture_output: bool = True,
        stdin: IO[Any] | None = None,
    ) -> str:
        argv = list(args)
        merged = {**self._base_env, **(env or {})}
        logger.debug("Running %s (cwd=%s)", " ".join(argv), cwd)
        try:
            completed = subprocess.run(
                argv,
                cwd=str(cwd),
                env=merged or None,
                check=True,
                text=True,
                capture_output=capture_output,
                stdin=stdin,
            )
        except subprocess.CalledProcessError as exc:
            raise ExternalCommandFailure(argv, exc.returncode, exc.stderr or "") from exc
        except OSError as exc:
            raise ExternalCommandFailure(argv, reason=f"could not be started: {exc}") from exc
        except UnicodeDecodeError as exc:
            raise ExternalCommandFailure(argv, reason=f"produced output that is not UTF-8: {exc}") from exc
        if capture_output:
            return completed.stdout
        return ""


__all__ = ["CommandRunner", "Runner"]
