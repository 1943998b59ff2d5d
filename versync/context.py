"""Per-invocation state derived once from the environment at process start."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

from .config import VersyncConfig

SKIP_PREPARE_ENV = "VERSYNC_SKIP_PREPARE_COMMIT_MSG"
FROM_POST_COMMIT_ENV = "VERSYNC_FROM_POST_COMMIT"
TRUNK_REF_ENV = "VERSYNC_TRUNK_REF"
COMMIT_ENV_KEYS = ("VERSYNC_COMMIT", "CI_COMMIT_SHA")
CI_ENV_KEYS = ("CI", "GITLAB_CI")


class Stage(str, Enum):
    """Points in the commit lifecycle at which git invokes versync."""

    PREPARE_COMMIT_MSG = "prepare-commit-msg"
    PRE_COMMIT = "pre-commit"
    POST_COMMIT = "post-commit"
    CHECK = "check"


@dataclass(frozen=True)
class InvocationContext:
    """Which stage runs, the loop-avoidance flags, and the effective environment."""

    stage: Stage
    in_ci: bool
    trunk_branch: str
    trunk_remote: str
    trunk_ref: str
    skip_prepare_commit_msg: bool
    from_post_commit: bool
    commit_ref: Optional[str] = None
    environ: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_environ(
        cls, stage: Stage, environ: Mapping[str, str], config: VersyncConfig
    ) -> "InvocationContext":
        in_ci = any(environ.get(key) for key in CI_ENV_KEYS)
        trunk = config.trunk
        default_ref = f"{trunk.remote}/{trunk.branch}" if in_ci else trunk.branch
        commit_ref = next((environ[key] for key in COMMIT_ENV_KEYS if environ.get(key)), None)
        return cls(
            stage=stage,
            in_ci=in_ci,
            trunk_branch=trunk.branch,
            trunk_remote=trunk.remote,
            trunk_ref=environ.get(TRUNK_REF_ENV) or default_ref,
            skip_prepare_commit_msg=environ.get(SKIP_PREPARE_ENV) == "1",
            from_post_commit=environ.get(FROM_POST_COMMIT_ENV) == "1",
            commit_ref=commit_ref,
            environ=MappingProxyType(dict(environ)),
        )

    def is_trunk(self, ref_name: str) -> bool:
        """True when ``ref_name`` names the trunk branch locally or on any form of its ref."""
        return ref_name in {self.trunk_branch, self.trunk_ref, f"{self.trunk_remote}/{self.trunk_branch}"}


__all__ = [
    "COMMIT_ENV_KEYS",
    "FROM_POST_COMMIT_ENV",
    "InvocationContext",
    "SKIP_PREPARE_ENV",
    "Stage",
    "TRUNK_REF_ENV",
]
