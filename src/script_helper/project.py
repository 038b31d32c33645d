from __future__ import annotations

import importlib.util
import json
import logging
import os
import shutil
import sys
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any, TypeVar

from packaging.requirements import InvalidRequirement, Requirement
from packaging.utils import canonicalize_name

from script_helper.boundary import (
    MANIFEST_FILENAME,
    ProjectBoundary,
    read_manifest,
    resolve_boundary,
    same_name,
)
from script_helper.config import load_module_config
from script_helper.engine import Executor, concurrent_args
from script_helper.errors import ScriptNotFoundError
from script_helper.executable import Executable, ScriptResult, SingleExecutable
from script_helper.manifest import Manifest
from script_helper.registry import list_scripts, load_script, resolve_script
from script_helper.script_kit import ScriptKit

LOGGER_NAME = "script_helper"

_LOG_LEVELS: dict[str, int] = {
    "none": logging.CRITICAL + 10,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "verbose": logging.DEBUG,
    "debug": logging.DEBUG,
    "silly": logging.DEBUG,
}

_COMPILED_BUILD_REQUIREMENTS: frozenset[str] = frozenset(
    {"cython", "maturin", "scikit-build-core", "meson-python", "setuptools-rust"}
)

T = TypeVar("T")
F = TypeVar("F")


def _coerce_log_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    try:
        return _LOG_LEVELS[level.strip().lower()]
    except KeyError:
        allowed = ", ".join(_LOG_LEVELS)
        raise ValueError(f"Unknown log level {level!r} (allowed: {allowed}).") from None


def _default_files_dir() -> Path | None:
    main_file = getattr(sys.modules.get("__main__"), "__file__", None)
    if not main_file:
        return None
    return Path(main_file).resolve().parent


def _requirement_names(specs: Iterable[Any]) -> set[str]:
    names: set[str] = set()
    for spec in specs:
        if not isinstance(spec, str) or not spec.strip():
            continue
        try:
            names.add(canonicalize_name(Requirement(spec).name))
        except InvalidRequirement:
            continue
    return names


class Project:
    """
    Handle on the host project, handed to every script entry point.

    The scripts module's *files dir* holds sibling ``scripts`` and ``config`` directories; it defaults
    to the directory of the running ``__main__`` module.
    """

    def __init__(
        self,
        *,
        files_dir: Path | str | None = None,
        module_root: Path | str | None = None,
        cwd: Path | str | None = None,
        levels: int = 0,
        debug: bool = False,
        track: bool = True,
        log_level: str | int | None = None,
        logger: logging.Logger | None = None,
        runner: Sequence[str] | None = None,
    ) -> None:
        self._logger = logger or logging.getLogger(LOGGER_NAME)
        if log_level is None and debug:
            log_level = "debug"
        if log_level is not None:
            self._logger.setLevel(_coerce_log_level(log_level))

        self._boundary: ProjectBoundary = resolve_boundary(
            module_root=module_root, cwd=cwd, levels=levels
        )
        self._debug = debug
        if files_dir is not None:
            self._files_dir = Path(files_dir).resolve()
        else:
            self._files_dir = _default_files_dir() or self._boundary.module_root

        self._package = Manifest(self._boundary.project_root / MANIFEST_FILENAME, track=track)
        self._config, self._config_file = load_module_config(
            self._boundary.project_root,
            self._boundary.module_name,
            project_manifest=self._boundary.project_manifest,
        )
        self._executor = Executor(
            runner=runner,
            bin_dirs=self.bin_dirs,
            debug=debug,
            logger=self._logger,
        )
        if debug:
            self._logger.warning("Debug mode is on")

    def __repr__(self) -> str:
        return (
            f"Project(name={self.name!r}, root={str(self.root)!r}, "
            f"module_name={self.module_name!r}, module_root={str(self.module_root)!r})"
        )

    @property
    def boundary(self) -> ProjectBoundary:
        return self._boundary

    @property
    def root(self) -> Path:
        return self._boundary.project_root

    @property
    def name(self) -> str:
        return self._boundary.project_name

    @property
    def module_root(self) -> Path:
        return self._boundary.module_root

    @property
    def module_name(self) -> str:
        return self._boundary.module_name

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    @property
    def debug(self) -> bool:
        return self._debug

    @property
    def config(self) -> dict[str, Any]:
        return self._config

    @property
    def config_file(self) -> Path | None:
        return self._config_file

    @property
    def package(self) -> Manifest:
        return self._package

    @property
    def executor(self) -> Executor:
        return self._executor

    @property
    def files_dir(self) -> Path:
        return self._files_dir

    @property
    def scripts_dir(self) -> Path:
        return self._files_dir / "scripts"

    @property
    def config_dir(self) -> Path:
        return self._files_dir / "config"

    @property
    def available_scripts(self) -> list[str]:
        return list_scripts(self.scripts_dir)

    @property
    def venv_bin_dir(self) -> Path:
        return self.root / ".venv" / ("Scripts" if os.name == "nt" else "bin")

    @property
    def bin_dirs(self) -> list[Path]:
        return [self.venv_bin_dir]

    @property
    def is_compiled(self) -> bool:
        requires = self._package.get("build-system.requires", [])
        if not isinstance(requires, list):
            return False
        return bool(_requirement_names(requires) & _COMPILED_BUILD_REQUIREMENTS)

    @property
    def is_typed(self) -> bool:
        if (self.root / "py.typed").is_file():
            return True
        return any(self.root.glob("*/py.typed")) or any(self.root.glob("src/*/py.typed"))

    def from_root(self, *parts: str) -> Path:
        return self.root.joinpath(*parts)

    def from_module_root(self, *parts: str) -> Path:
        return self.module_root.joinpath(*parts)

    def from_scripts_dir(self, *parts: str) -> Path:
        return self.scripts_dir.joinpath(*parts)

    def from_config_dir(self, *parts: str) -> Path:
        return self.config_dir.joinpath(*parts)

    def bin(self, executable: str) -> str:
        """Path of `executable` in the project virtualenv, relative to the working directory."""
        relative = os.path.relpath(self.venv_bin_dir / executable, Path.cwd())
        return f".{os.sep}{relative}"

    def resolve_bin(self, executable: str) -> str:
        """
        Return how `executable` should be invoked.

        A command found on PATH is returned by name; otherwise the project virtualenv is searched and
        the full path returned.
        """

        if shutil.which(executable) is not None:
            return executable
        local = shutil.which(executable, path=os.pathsep.join(str(p) for p in self.bin_dirs))
        if local is not None:
            return local
        raise FileNotFoundError(
            f"Executable not found on PATH or in project virtualenv ({self.venv_bin_dir}): {executable}"
        )

    def resolve_scripts_bin(self) -> str | None:
        module_manifest = read_manifest(self.module_root)
        project_table = module_manifest.get("project")
        scripts = project_table.get("scripts") if isinstance(project_table, dict) else None
        if not isinstance(scripts, dict) or not scripts:
            return None
        for script_name in scripts:
            if same_name(script_name, self.module_name):
                return str(script_name)
        return None

    def resolve_module(self, name: str) -> Path:
        """Root directory of the importable package (or single-file module) `name`."""
        spec = importlib.util.find_spec(name)
        if spec is None:
            raise ModuleNotFoundError(f"No module named {name!r}", name=name)
        if spec.submodule_search_locations:
            return Path(next(iter(spec.submodule_search_locations))).resolve()
        if spec.origin is None or not spec.has_location:
            raise ModuleNotFoundError(f"Module {name!r} has no location on disk", name=name)
        return Path(spec.origin).resolve().parent

    def dependency_names(self) -> set[str]:
        specs: list[Any] = []
        deps = self._package.get("project.dependencies", [])
        if isinstance(deps, list):
            specs.extend(deps)
        for table_key in ("project.optional-dependencies", "dependency-groups"):
            groups = self._package.get(table_key, {})
            if not isinstance(groups, dict):
                continue
            for group_specs in groups.values():
                if isinstance(group_specs, list):
                    specs.extend(group_specs)
        return _requirement_names(specs)

    def has_any_dep(self, deps: str | Iterable[str], t: T = True, f: F = False) -> T | F:  # type: ignore[assignment]
        wanted = {canonicalize_name(d) for d in ([deps] if isinstance(deps, str) else deps)}
        return t if wanted & self.dependency_names() else f

    def env_is_set(self, name: str) -> bool:
        value = os.environ.get(name)
        return value is not None and value != ""

    def parse_env(self, name: str, default: Any = None) -> Any:
        if not self.env_is_set(name):
            return default
        raw = os.environ[name]
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return raw

    def _config_list(self, key: str) -> list[Any]:
        value = self._config.get(key)
        return value if isinstance(value, list) else []

    def is_opted_in(self, key: str, t: T = True, f: F = False) -> T | F:  # type: ignore[assignment]
        return t if key in self._config_list("opt_in") else f

    def is_opted_out(self, key: str, t: T = True, f: F = False) -> T | F:  # type: ignore[assignment]
        return t if key in self._config_list("opt_out") else f

    def has_script(self, script_file: str) -> Path | None:
        return resolve_script(self.scripts_dir, script_file)

    def execute_script_file(
        self, script_file: str, args: Sequence[str] = ()
    ) -> ScriptResult | list[ScriptResult]:
        path = self.has_script(script_file)
        if path is None:
            raise ScriptNotFoundError(script_file, self.scripts_dir)
        script_function = load_script(path)
        return script_function(self, list(args), ScriptKit(self, script_file))

    def run(self, *executables: Executable | None) -> ScriptResult:
        return self._executor.run(*executables)

    def run_without_exit(self, *executables: Executable | None) -> ScriptResult:
        return self._executor.run_without_exit(*executables)

    def concurrent_args(
        self,
        entries: Mapping[str, SingleExecutable | None],
        *,
        kill_others: bool = True,
    ) -> list[str]:
        return concurrent_args(entries, kill_others=kill_others)

    def execute_from_cli(
        self, argv: Sequence[str] | None = None, *, exit: bool = True
    ) -> ScriptResult | list[ScriptResult] | None:
        from script_helper.dispatch import dispatch

        return dispatch(self, argv, exit_on_finish=exit)

    def save(self) -> bool:
        saved = self._package.save()
        if saved:
            self._logger.debug("Saved %s", self._package.path)
        return saved
