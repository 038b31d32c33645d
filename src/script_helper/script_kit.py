from __future__ import annotations

import os
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from script_helper.errors import ScriptNotFoundError
from script_helper.executable import ScriptResult
from script_helper.registry import script_entry_file

if TYPE_CHECKING:
    from script_helper.project import Project


class ScriptKit:
    """Path and sub-script helpers scoped to the script being executed."""

    def __init__(self, project: Project, script_name: str) -> None:
        path = project.has_script(script_name)
        if path is None:
            raise ScriptNotFoundError(script_name, project.scripts_dir)
        self._project = project
        self._name = script_name
        self._path = path
        self._file = script_entry_file(path)

    @property
    def name(self) -> str:
        return self._name

    @property
    def path(self) -> Path:
        return self._path

    @property
    def file(self) -> Path:
        return self._file

    @property
    def dir(self) -> Path:
        return self._file.parent

    @property
    def config_dir(self) -> Path:
        """`config` directory paired with the nearest enclosing `scripts` directory."""
        parts = list(self.dir.parts)
        while parts and parts.pop() != "scripts":
            pass
        return Path(*parts, "config")

    @property
    def extension(self) -> str:
        return self._file.suffix.removeprefix(".")

    def here(self, *parts: str) -> Path:
        return self.dir.joinpath(*parts)

    def here_relative(self, *parts: str) -> str:
        return f".{os.sep}{os.path.relpath(self.here(*parts), Path.cwd())}"

    def execute_sub_script(
        self, name: str, args: Sequence[str] = ()
    ) -> ScriptResult | list[ScriptResult]:
        relative_dir = Path(os.path.relpath(self.dir, self._project.scripts_dir))
        return self._project.execute_script_file(str(relative_dir / name), args)
