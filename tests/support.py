from __future__ import annotations

import textwrap
from dataclasses import dataclass
from pathlib import Path

from script_helper import Project

HOST_PYPROJECT = """
    # host project manifest
    [project]
    name = "host-app"
    version = "1.0.0"
    dependencies = ["requests>=2", "PyYAML"]

    [project.optional-dependencies]
    dev = ["pytest>=8"]

    [build-system]
    requires = ["setuptools>=68"]
    build-backend = "setuptools.build_meta"
"""

MODULE_PYPROJECT = """
    [project]
    name = "my-scripts"
    version = "0.3.0"

    [project.scripts]
    my-scripts = "my_scripts.__main__:main"
"""


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(text).lstrip(), encoding="utf-8")
    return path


@dataclass(frozen=True)
class Layout:
    """Host project with the scripts module checked out underneath it."""

    project_root: Path
    module_root: Path
    files_dir: Path

    @classmethod
    def create(cls, base: Path) -> Layout:
        project_root = base / "host"
        module_root = project_root / "vendor" / "my-scripts"
        files_dir = module_root / "my_scripts"

        write(project_root / "pyproject.toml", HOST_PYPROJECT)
        write(module_root / "pyproject.toml", MODULE_PYPROJECT)
        write(files_dir / "__init__.py", "")
        (files_dir / "scripts").mkdir(parents=True)
        (files_dir / "config").mkdir(parents=True)
        return cls(project_root=project_root, module_root=module_root, files_dir=files_dir)

    @property
    def scripts_dir(self) -> Path:
        return self.files_dir / "scripts"

    @property
    def config_dir(self) -> Path:
        return self.files_dir / "config"

    def add_script(self, name: str, body: str) -> Path:
        return write(self.scripts_dir / name, body)

    def project(self, **options: object) -> Project:
        options.setdefault("module_root", self.module_root)
        options.setdefault("files_dir", self.files_dir)
        return Project(**options)  # type: ignore[arg-type]
