from __future__ import annotations

import hashlib
import importlib.util
import re
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

from script_helper.errors import ScriptContractError

SCRIPT_ENTRY_POINT = "script"

# Probe order for extension-less names: source first, then compiled.
SCRIPT_SUFFIXES: tuple[str, ...] = (".py", ".pyc")
_ARTIFACT_SUFFIXES: tuple[str, ...] = (".pyi", ".map")
_SKIPPED_NAMES: frozenset[str] = frozenset({"__pycache__", "__init__.py", "__init__.pyc", "__main__.py"})
_TEST_SEGMENTS: frozenset[str] = frozenset({"tests", "__tests__"})

_MODULE_SLUG_RE = re.compile(r"[^a-zA-Z0-9_]+")


def _strip_script_suffix(name: str) -> str:
    for suffix in SCRIPT_SUFFIXES:
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


def list_scripts(scripts_dir: Path) -> list[str]:
    scripts_dir = Path(scripts_dir)
    if not scripts_dir.is_dir():
        return []

    names: set[str] = set()
    for entry in scripts_dir.iterdir():
        raw = entry.name
        if raw.startswith(".") or raw in _SKIPPED_NAMES or raw in _TEST_SEGMENTS:
            continue
        if raw.endswith(_ARTIFACT_SUFFIXES):
            continue
        name = _strip_script_suffix(raw)
        if name:
            names.add(name)
    return sorted(names)


def resolve_script(scripts_dir: Path, name: str) -> Path | None:
    """
    Resolve a script name to a file or package directory under `scripts_dir`.

    1. An exact match (file or directory) wins.
    2. A name without an extension is probed as `<name>.py`, then `<name>.pyc`.
    """

    if not isinstance(name, str) or not name.strip():
        return None

    path = Path(scripts_dir) / name
    if path.exists():
        return path
    if path.suffix == "":
        for suffix in SCRIPT_SUFFIXES:
            candidate = path.with_name(path.name + suffix)
            if candidate.exists():
                return candidate
    return None


def script_entry_file(path: Path) -> Path:
    path = Path(path)
    if not path.is_dir():
        return path
    for init_name in ("__init__.py", "__init__.pyc"):
        init_file = path / init_name
        if init_file.is_file():
            return init_file
    raise ScriptContractError(f"Script package has no __init__.py: {path}")


def _module_name_for(path: Path) -> str:
    digest = hashlib.sha1(str(path.resolve()).encode("utf-8")).hexdigest()[:12]
    stem = _MODULE_SLUG_RE.sub("_", _strip_script_suffix(path.name)).strip("_") or "script"
    return f"_script_helper_unit_{stem}_{digest}"


def load_script(path: Path) -> Callable[..., Any]:
    """Import a script unit afresh and return its `script` callable."""

    path = Path(path)
    entry = script_entry_file(path)
    search_locations = [str(path)] if path.is_dir() else None
    spec = importlib.util.spec_from_file_location(
        _module_name_for(path),
        entry,
        submodule_search_locations=search_locations,
    )
    if spec is None or spec.loader is None:
        raise ScriptContractError(f"Cannot load script file: {entry}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[spec.name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        sys.modules.pop(spec.name, None)
        raise

    func = getattr(module, SCRIPT_ENTRY_POINT, None)
    if not callable(func):
        raise ScriptContractError(
            f"Script file does not export a `{SCRIPT_ENTRY_POINT}` function: {entry}. "
            f"Define `def {SCRIPT_ENTRY_POINT}(project, args, script_kit): ...` in the script file."
        )
    return func
