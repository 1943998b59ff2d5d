"""Reading and writing the version field of tracked build manifests.

Each manifest kind has a format object that knows how to pull the raw
version value out of a document and how to produce a new document with the
value replaced. ``ManifestSynchronizer`` layers git access, staging and the
lock-step write order on top of them.
"""

from __future__ import annotations

import json
import os
import re
import tempfile
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Mapping, Protocol, Sequence

from .config import ManifestReference
from .errors import MalformedManifest
from .git.repository import Repository
from .logging import get_logger
from .process import Runner
from .version import Version


class ManifestFormat(Protocol):
    def read(self, text: str, field: str, source: str) -> Any: ...

    def replace(self, text: str, field: str, value: str, source: str) -> str: ...


class JsonManifestFormat:
    """A JSON object holding the version under a dotted key path."""

    def read(self, text: str, field: str, source: str) -> Any:
        return _lookup(self._load(text, source), field, source)

    def replace(self, text: str, field: str, value: str, source: str) -> str:
        data = self._load(text, source)
        *parents, key = field.split(".")
        target = data
        for part in parents:
            target = target.get(part) if isinstance(target, dict) else None
        if not isinstance(target, dict) or key not in target:
            raise MalformedManifest(f"{source} has no '{field}' field")
        target[key] = value
        rendered = json.dumps(data, indent=2, ensure_ascii=False)
        return rendered + "\n" if text.endswith("\n") else rendered

    @staticmethod
    def _load(text: str, source: str) -> Dict[str, Any]:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise MalformedManifest(f"{source} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise MalformedManifest(f"{source} must contain a JSON object")
        return data


class TomlManifestFormat:
    """A TOML document holding the version as ``key`` inside a ``[table]``.

    Writes touch only the matching line so comments, ordering and formatting
    of the rest of the file are preserved.
    """

    _KEY_TEMPLATE = r"^(?P<lead>\s*{key}\s*=\s*)(?P<quote>[\"'])(?P<value>[^\"'\n]*)(?P=quote)"

    def read(self, text: str, field: str, source: str) -> Any:
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise MalformedManifest(f"{source} is not valid TOML: {exc}") from exc
        return _lookup(data, field, source)

    def replace(self, text: str, field: str, value: str, source: str) -> str:
        self.read(text, field, source)
        table, _, key = field.rpartition(".")
        key_pattern = re.compile(self._KEY_TEMPLATE.format(key=re.escape(key)))
        lines = text.splitlines(keepends=True)
        in_table = not table
        for index, line in enumerate(lines):
            header = _TABLE_HEADER.match(line)
            if header is not None:
                in_table = header.group("open") == "[" and header.group("name").strip() == table
                continue
            if not in_table:
                continue
            match = key_pattern.match(line)
            if match is not None:
                start, end = match.span("value")
                lines[index] = line[:start] + value + line[end:]
                return "".join(lines)
        raise MalformedManifest(f"{source} has no plain string '{field}' line to update")


_TABLE_HEADER = re.compile(r"^\s*(?P<open>\[\[?)(?P<name>[^\[\]]+)\]\]?\s*(#.*)?$")

FORMATS: Mapping[str, ManifestFormat] = {
    "json": JsonManifestFormat(),
    "toml": TomlManifestFormat(),
}


class ManifestSynchronizer:
    """The only component that rewrites manifests or stages them."""

    def __init__(
        self,
        repository: Repository,
        manifests: Sequence[ManifestReference],
        runner: Runner,
    ) -> None:
        self.repository = repository
        self.manifests = list(manifests)
        self._runner = runner
        self.logger = get_logger("manifests")

    @property
    def root(self) -> Path:
        return self.repository.root

    def read_version(self, manifest: ManifestReference, revision: str) -> Version:
        """Version recorded in ``manifest`` at ``revision``."""
        source = f"{manifest.path}@{revision[:12]}"
        text = self.repository.show_file(revision, manifest.path)
        raw = FORMATS[manifest.kind].read(text, manifest.version_field, source)
        return Version.parse(raw, source=manifest.path)

    def read_versions(self, revision: str) -> Dict[str, Version]:
        return {
            manifest.path: self.read_version(manifest, revision) for manifest in self.manifests
        }

    def read_working_version(self, manifest: ManifestReference) -> Version:
        text = self._read_text(manifest)
        raw = FORMATS[manifest.kind].read(text, manifest.version_field, manifest.path)
        return Version.parse(raw, source=manifest.path)

    def write_version(self, manifest: ManifestReference, version: Version) -> bool:
        """Write ``version`` into the working-tree manifest and stage it.

        Returns ``False`` without touching the file or the index when the
        manifest already holds the target value.
        """
        fmt = FORMATS[manifest.kind]
        text = self._read_text(manifest)
        current = fmt.read(text, manifest.version_field, manifest.path)
        target = str(version)
        if current == target:
            self.logger.debug("%s already at %s", manifest.path, target)
            return False
        # Refuse to overwrite a value that was never a valid version.
        Version.parse(current, source=manifest.path)

        _replace_file(self.root / manifest.path, fmt.replace(text, manifest.version_field, target, manifest.path))
        if manifest.refresh:
            self._runner(manifest.refresh, cwd=self.root, env=None, capture_output=True)
        self.repository.stage(self.paths_for([manifest]))
        self.logger.info("Updated %s version to %s", manifest.path, target)
        return True

    def synchronize(self, version: Version) -> List[ManifestReference]:
        """Write ``version`` to every manifest in order; return those that changed.

        Every manifest is visited even when earlier ones were already current.
        """
        changed: List[ManifestReference] = []
        for manifest in self.manifests:
            if self.write_version(manifest, version):
                changed.append(manifest)
        return changed

    def paths_for(self, manifests: Sequence[ManifestReference]) -> List[str]:
        paths: List[str] = []
        for manifest in manifests:
            for path in (manifest.path, *manifest.companions):
                if path not in paths:
                    paths.append(path)
        return paths

    def _read_text(self, manifest: ManifestReference) -> str:
        path = self.root / manifest.path
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise MalformedManifest(f"{manifest.path} could not be read: {exc}") from exc
        except UnicodeDecodeError as exc:
            raise MalformedManifest(f"{manifest.path} is not UTF-8 text: {exc}") from exc


def _lookup(data: Mapping[str, Any], field: str, source: str) -> Any:
    value: Any = data
    for part in field.split("."):
        if not isinstance(value, Mapping) or part not in value:
            raise MalformedManifest(f"{source} has no '{field}' field")
        value = value[part]
    return value


def _replace_file(path: Path, content: str) -> None:
    """Swap ``path`` for ``content`` in one rename so readers never see a partial file."""
    handle = tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", dir=path.parent, prefix=f".{path.name}.", delete=False
    )
    try:
        with handle:
            handle.write(content)
        if path.exists():
            os.chmod(handle.name, path.stat().st_mode & 0o777)
        os.replace(handle.name, path)
    except BaseException:
        Path(handle.name).unlink(missing_ok=True)
        raise


__all__ = [
    "FORMATS",
    "JsonManifestFormat",
    "ManifestFormat",
    "ManifestSynchronizer",
    "TomlManifestFormat",
]
