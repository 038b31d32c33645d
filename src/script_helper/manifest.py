from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

import tomlkit
from tomlkit import TOMLDocument
from tomlkit.exceptions import TOMLKitError

from script_helper.errors import ManifestError

_MISSING = object()


def _split_key(key: str) -> list[str]:
    parts = [p for p in key.split(".") if p]
    if not parts:
        raise ManifestError(f"Invalid manifest key: {key!r}")
    return parts


class Manifest:
    """
    Format-preserving view of a project's ``pyproject.toml``.

    Edits stay in memory until `save()`; with ``track=False`` they are never written.
    """

    def __init__(self, path: Path, *, track: bool = True) -> None:
        self._path = Path(path)
        self._track = track
        try:
            self._original_text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise ManifestError(f"Missing manifest: {self._path}") from e
        except OSError as e:
            raise ManifestError(f"Failed to read manifest: {self._path}: {e}") from e
        try:
            self._doc: TOMLDocument = tomlkit.parse(self._original_text)
        except TOMLKitError as e:
            raise ManifestError(f"Failed to parse manifest: {self._path}: {e}") from e

    @property
    def path(self) -> Path:
        return self._path

    @property
    def track(self) -> bool:
        return self._track

    @property
    def document(self) -> TOMLDocument:
        return self._doc

    def _lookup(self, key: str) -> Any:
        node: Any = self._doc
        for part in _split_key(key):
            if not isinstance(node, dict) or part not in node:
                return _MISSING
            node = node[part]
        return node

    def get(self, key: str, default: Any = None) -> Any:
        value = self._lookup(key)
        if value is _MISSING:
            return default
        return value.unwrap() if hasattr(value, "unwrap") else value

    def has(self, key: str) -> bool:
        return self._lookup(key) is not _MISSING

    def has_sub_prop(self, key: str, props: str | Iterable[str]) -> bool:
        node = self._lookup(key)
        if not isinstance(node, dict):
            return False
        names = [props] if isinstance(props, str) else list(props)
        return any(name in node for name in names)

    def set(self, key: str, value: Any) -> None:
        parts = _split_key(key)
        node: Any = self._doc
        for part in parts[:-1]:
            child = node.get(part)
            if child is None:
                node[part] = tomlkit.table()
                child = node[part]
            elif not isinstance(child, dict):
                raise ManifestError(f"Cannot set {key!r}: {part!r} is not a table in {self._path}")
            node = child
        node[parts[-1]] = value

    def remove(self, key: str) -> bool:
        parts = _split_key(key)
        parent = self._lookup(".".join(parts[:-1])) if len(parts) > 1 else self._doc
        if not isinstance(parent, dict) or parts[-1] not in parent:
            return False
        del parent[parts[-1]]
        return True

    def to_dict(self) -> dict[str, Any]:
        return self._doc.unwrap()

    @property
    def dirty(self) -> bool:
        return tomlkit.dumps(self._doc) != self._original_text

    def save(self) -> bool:
        if not self._track or not self.dirty:
            return False
        text = tomlkit.dumps(self._doc)
        self._path.write_text(text, encoding="utf-8")
        self._original_text = text
        return True
