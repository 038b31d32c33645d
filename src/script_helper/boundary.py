"""
Locate the host project and the scripts module on disk.

The scripts module is the package that ships a ``scripts`` directory and calls into this library;
the host project is the package whose build/test/lint tasks those scripts drive. Both are identified
by the nearest ``pyproject.toml`` that declares a ``[project].name``.

Explicit roots (``module_root``/``cwd``) are always preferred. Without them the module root is found
by walking the call stack to the first frame that lives outside this package.
"""

from __future__ import annotations

import inspect
import os
import tomllib
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from packaging.utils import canonicalize_name

from script_helper.errors import BoundaryError

MANIFEST_FILENAME = "pyproject.toml"

_PACKAGE_DIR = Path(__file__).resolve().parent


@dataclass(frozen=True)
class ProjectBoundary:
    project_root: Path
    module_root: Path
    project_name: str
    module_name: str
    project_manifest: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def self_hosted(self) -> bool:
        return self.project_root == self.module_root


def find_manifest_dir(start: Path) -> Path | None:
    cur = Path(start).resolve()
    if cur.is_file():
        cur = cur.parent
    for candidate in [cur, *cur.parents]:
        if (candidate / MANIFEST_FILENAME).is_file():
            return candidate
    return None


def read_manifest(directory: Path) -> dict[str, Any]:
    path = Path(directory) / MANIFEST_FILENAME
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise BoundaryError(f"Missing {MANIFEST_FILENAME}: {path}") from e
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise BoundaryError(f"Failed to parse {MANIFEST_FILENAME}: {path}: {e}") from e
    return data


def manifest_name(manifest: dict[str, Any]) -> str | None:
    project = manifest.get("project")
    if not isinstance(project, dict):
        return None
    name = project.get("name")
    if not isinstance(name, str) or not name.strip():
        return None
    return name


def same_name(left: str | None, right: str | None) -> bool:
    if not left or not right:
        return False
    return canonicalize_name(left) == canonicalize_name(right)


def _caller_filenames() -> list[str]:
    out: list[str] = []
    frame = inspect.currentframe()
    try:
        while frame is not None:
            out.append(frame.f_code.co_filename)
            frame = frame.f_back
    finally:
        del frame
    return out


def _is_library_frame(filename: str) -> bool:
    # `<frozen importlib._bootstrap>`, `<string>`, `<stdin>` and friends have no file behind them.
    if not filename or filename.startswith("<"):
        return True
    try:
        resolved = Path(filename).resolve()
    except OSError:
        return True
    return resolved.is_relative_to(_PACKAGE_DIR)


def resolve_module_root(*, stack: Iterable[str] | None = None) -> Path:
    filenames = list(stack) if stack is not None else _caller_filenames()
    for filename in filenames:
        if _is_library_frame(filename):
            continue
        root = find_manifest_dir(Path(filename).parent)
        if root is None:
            raise BoundaryError(
                f"Cannot find module root: no {MANIFEST_FILENAME} above calling file {filename}"
            )
        return root
    raise BoundaryError("Cannot find module root")


def resolve_project_root(module_root: Path, module_name: str) -> tuple[Path, dict[str, Any]]:
    module_root = Path(module_root).resolve()
    if module_root.parent != module_root:
        root = find_manifest_dir(module_root.parent)
        if root is not None:
            return root, read_manifest(root)

    # Self-hosting: the scripts module runs its own scripts against itself.
    if (module_root / MANIFEST_FILENAME).is_file():
        manifest = read_manifest(module_root)
        if same_name(manifest_name(manifest), module_name):
            return module_root, manifest

    raise BoundaryError(f"Cannot find project root for module {module_name!r} at {module_root}")


def get_package_and_dir(
    *,
    cwd: Path | str | None = None,
    levels: int = 0,
    module_root: Path | None = None,
) -> tuple[dict[str, Any], Path]:
    """
    Return ``(manifest, directory)`` for the host project.

    With ``cwd`` the search starts ``levels`` directories above it (after resolving symlinks) and
    walks upward. This is the fast path for callers that already know their directory layout.
    Without ``cwd`` the search starts one level above the module root.
    """

    if levels < 0:
        raise ValueError(f"levels must be >= 0, got {levels}")
    try:
        if cwd is not None:
            start = Path(os.path.realpath(Path(cwd).joinpath(*([".."] * levels))))
            root = find_manifest_dir(start)
            if root is None:
                raise BoundaryError(f"Project directory cannot be found in cwd: {start}")
            return read_manifest(root), root

        if module_root is None:
            module_root = resolve_module_root()
        module_name = manifest_name(read_manifest(module_root)) or ""
        root, manifest = resolve_project_root(module_root, module_name)
        return manifest, root
    except BoundaryError as e:
        raise BoundaryError(f"Cannot find {MANIFEST_FILENAME} and project directory: {e}") from e


def resolve_boundary(
    *,
    module_root: Path | str | None = None,
    cwd: Path | str | None = None,
    levels: int = 0,
    stack: Iterable[str] | None = None,
) -> ProjectBoundary:
    resolved_module_root = (
        Path(module_root).resolve() if module_root is not None else resolve_module_root(stack=stack)
    )
    module_manifest = read_manifest(resolved_module_root)
    module_name = manifest_name(module_manifest)
    if module_name is None:
        raise BoundaryError(
            f"Missing/invalid [project].name in {resolved_module_root / MANIFEST_FILENAME}"
        )

    manifest, project_root = get_package_and_dir(
        cwd=cwd, levels=levels, module_root=resolved_module_root
    )
    project_name = manifest_name(manifest)
    if project_name is None:
        raise BoundaryError(f"Missing/invalid [project].name in {project_root / MANIFEST_FILENAME}")

    return ProjectBoundary(
        project_root=project_root,
        module_root=resolved_module_root,
        project_name=project_name,
        module_name=module_name,
        project_manifest=manifest,
    )
