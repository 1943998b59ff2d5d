"""Configuration loading for versync (.versync.yml)."""

from __future__ import annotations

import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .errors import ConfigError

CONFIG_FILENAME = ".versync.yml"

MANIFEST_KINDS = ("json", "toml")
DEFAULT_FIELDS = {"json": "version", "toml": "package.version"}


@dataclass
class ManifestReference:
    """One tracked manifest and how its version field is reached."""

    path: str
    kind: str
    version_field: str = ""
    refresh: List[str] = field(default_factory=list)
    companions: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.kind not in MANIFEST_KINDS:
            raise ConfigError(
                f"manifest {self.path} has unknown kind '{self.kind}' "
                f"(expected one of {', '.join(MANIFEST_KINDS)})"
            )
        if not self.version_field:
            self.version_field = DEFAULT_FIELDS[self.kind]


@dataclass
class TrunkConfig:
    """The long-lived integration branch."""

    branch: str = "main"
    remote: str = "origin"


@dataclass
class FetchConfig:
    depth: int = 150
    on_hook: bool = True


@dataclass
class HelperConfig:
    """Interactive commit-message helper launched by prepare-commit-msg."""

    command: List[str] = field(default_factory=lambda: ["npx", "git-cz", "--hook"])
    workdir: str = "."


@dataclass
class LintConfig:
    """Commit message rules; ``command`` delegates to an external linter instead."""

    command: Optional[List[str]] = None
    header_min_length: int = 8
    header_max_length: int = 72
    subject_min_length: int = 3
    subject_max_length: int = 50
    body_max_line_length: int = 80


@dataclass
class VersyncConfig:
    """Represents the project settings defined in .versync.yml."""

    root: Path
    trunk: TrunkConfig = field(default_factory=TrunkConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    manifests: List[ManifestReference] = field(default_factory=lambda: default_manifests())
    helper: HelperConfig = field(default_factory=HelperConfig)
    lint: LintConfig = field(default_factory=LintConfig)


def default_manifests() -> List[ManifestReference]:
    return [
        ManifestReference(path="package.json", kind="json"),
        ManifestReference(path="package-lock.json", kind="json"),
        ManifestReference(
            path="Cargo.toml",
            kind="toml",
            refresh=["cargo", "check"],
            companions=["Cargo.lock"],
        ),
    ]


def load_config(root: Path) -> VersyncConfig:
    """Load configuration from ``root``; defaults apply when the file is missing."""
    root = root.expanduser().resolve()
    config_file = root / CONFIG_FILENAME
    if not config_file.exists():
        return VersyncConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    trunk = TrunkConfig()
    trunk_data = _as_dict(data.get("trunk"))
    if trunk_data:
        trunk.branch = _as_str(trunk_data.get("branch")) or trunk.branch
        trunk.remote = _as_str(trunk_data.get("remote")) or trunk.remote

    fetch = FetchConfig()
    fetch_data = _as_dict(data.get("fetch"))
    if fetch_data:
        depth = _as_int(fetch_data.get("depth"))
        if depth is not None:
            if depth <= 0:
                raise ConfigError(f"fetch.depth must be positive (got {depth})")
            fetch.depth = depth
        on_hook = _as_bool(fetch_data.get("on_hook"))
        if on_hook is not None:
            fetch.on_hook = on_hook

    manifests = default_manifests()
    if "manifests" in data:
        manifests = _parse_manifests(data.get("manifests"))

    helper = HelperConfig()
    helper_data = _as_dict(data.get("helper"))
    if helper_data:
        command = _as_command(helper_data.get("command"))
        if command:
            helper.command = command
        helper.workdir = _as_str(helper_data.get("workdir")) or helper.workdir

    lint = LintConfig()
    lint_data = _as_dict(data.get("lint"))
    if lint_data:
        lint.command = _as_command(lint_data.get("command")) or None
        for name in (
            "header_min_length",
            "header_max_length",
            "subject_min_length",
            "subject_max_length",
            "body_max_line_length",
        ):
            value = _as_int(lint_data.get(name))
            if value is not None:
                setattr(lint, name, value)

    return VersyncConfig(
        root=root,
        trunk=trunk,
        fetch=fetch,
        manifests=manifests,
        helper=helper,
        lint=lint,
    )


def _parse_manifests(value: Any) -> List[ManifestReference]:
    if not isinstance(value, list) or not value:
        raise ConfigError("manifests must be a non-empty list")
    manifests: List[ManifestReference] = []
    seen: set[str] = set()
    for entry in value:
        entry_data = _as_dict(entry)
        path = _as_str(entry_data.get("path"))
        kind = _as_str(entry_data.get("kind"))
        if not path or not kind:
            raise ConfigError("every manifest entry needs a path and a kind")
        if path in seen:
            raise ConfigError(f"manifest {path} is listed twice")
        seen.add(path)
        manifests.append(
            ManifestReference(
                path=path,
                kind=kind,
                version_field=_as_str(entry_data.get("field")) or "",
                refresh=_as_command(entry_data.get("refresh")),
                companions=_as_str_list(entry_data.get("companions")),
            )
        )
    return manifests


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


def _as_command(value: Any) -> List[str]:
    if isinstance(value, str):
        return shlex.split(value)
    return _as_str_list(value)


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "FetchConfig",
    "HelperConfig",
    "LintConfig",
    "MANIFEST_KINDS",
    "ManifestReference",
    "TrunkConfig",
    "VersyncConfig",
    "default_manifests",
    "load_config",
]
