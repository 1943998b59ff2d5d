"""Tests for versync.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from versync.config import (
    CONFIG_FILENAME,
    ConfigError,
    ManifestReference,
    VersyncConfig,
    load_config,
)


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, VersyncConfig)
    assert config.root == tmp_path.resolve()
    assert config.trunk.branch == "main"
    assert config.trunk.remote == "origin"
    assert config.fetch.depth == 150
    assert config.fetch.on_hook is True
    assert [manifest.path for manifest in config.manifests] == [
        "package.json",
        "package-lock.json",
        "Cargo.toml",
    ]
    cargo = config.manifests[2]
    assert cargo.version_field == "package.version"
    assert cargo.refresh == ["cargo", "check"]
    assert cargo.companions == ["Cargo.lock"]
    assert config.helper.command == ["npx", "git-cz", "--hook"]
    assert config.lint.command is None
    assert config.lint.header_max_length == 72
    assert config.lint.body_max_line_length == 80


def test_manifest_reference_defaults() -> None:
    first = ManifestReference(path="package.json", kind="json")
    second = ManifestReference(path="Cargo.toml", kind="toml")

    first.companions.append("package-lock.json")

    assert first.version_field == "version"
    assert second.version_field == "package.version"
    assert second.refresh == []
    assert second.companions == []


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    (tmp_path / CONFIG_FILENAME).write_text(
        """
trunk:
  branch: trunk
  remote: upstream
fetch:
  depth: 40
  on_hook: false
manifests:
  - path: web/package.json
    kind: json
  - path: pyproject.toml
    kind: toml
    field: project.version
  - path: Cargo.toml
    kind: toml
    refresh: cargo update --workspace
    companions: [Cargo.lock]
helper:
  command: [npx, cz, --hook]
  workdir: web
lint:
  command: npx commitlint --from {from}
  subject_max_length: 60
""",
        encoding="utf-8",
    )

    config = load_config(tmp_path)

    assert config.trunk.branch == "trunk"
    assert config.trunk.remote == "upstream"
    assert config.fetch.depth == 40
    assert config.fetch.on_hook is False
    assert config.manifests == [
        ManifestReference(path="web/package.json", kind="json", version_field="version"),
        ManifestReference(path="pyproject.toml", kind="toml", version_field="project.version"),
        ManifestReference(
            path="Cargo.toml",
            kind="toml",
            version_field="package.version",
            refresh=["cargo", "update", "--workspace"],
            companions=["Cargo.lock"],
        ),
    ]
    assert config.helper.command == ["npx", "cz", "--hook"]
    assert config.helper.workdir == "web"
    assert config.lint.command == ["npx", "commitlint", "--from", "{from}"]
    assert config.lint.subject_max_length == 60
    assert config.lint.header_max_length == 72


def test_empty_file_uses_defaults(tmp_path: Path) -> None:
    (tmp_path / CONFIG_FILENAME).write_text("\n", encoding="utf-8")

    assert load_config(tmp_path).trunk.branch == "main"


@pytest.mark.parametrize(
    "content",
    [
        "- just\n- a list\n",
        "manifests: []\n",
        "manifests:\n  - path: a.json\n    kind: yaml\n",
        "manifests:\n  - path: a.json\n",
        "manifests:\n  - {path: a.json, kind: json}\n  - {path: a.json, kind: json}\n",
        "fetch:\n  depth: 0\n",
        "trunk: [unclosed\n",
    ],
)
def test_invalid_config_raises(tmp_path: Path, content: str) -> None:
    (tmp_path / CONFIG_FILENAME).write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)
