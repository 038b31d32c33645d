from __future__ import annotations

import os

import pytest
from support import Layout, write

from script_helper import ScriptKit, ScriptNotFoundError


def test_kit_for_single_file_script(layout: Layout) -> None:
    layout.add_script("build.py", "def script(project, args, kit):\n    return None\n")
    project = layout.project()
    kit = ScriptKit(project, "build")

    assert kit.name == "build"
    assert kit.path == project.scripts_dir / "build.py"
    assert kit.file == kit.path
    assert kit.dir == project.scripts_dir
    assert kit.extension == "py"
    assert kit.config_dir == project.config_dir
    assert kit.here("templates", "a.txt") == project.scripts_dir / "templates" / "a.txt"


def test_kit_for_package_script(layout: Layout) -> None:
    layout.add_script("release/__init__.py", "def script(project, args, kit):\n    return None\n")
    project = layout.project()
    kit = ScriptKit(project, "release")

    assert kit.path == project.scripts_dir / "release"
    assert kit.file == project.scripts_dir / "release" / "__init__.py"
    assert kit.dir == project.scripts_dir / "release"
    assert kit.config_dir == project.config_dir


def test_here_relative_is_dot_prefixed(layout: Layout, monkeypatch: pytest.MonkeyPatch) -> None:
    layout.add_script("build.py", "def script(project, args, kit):\n    return None\n")
    project = layout.project()
    monkeypatch.chdir(project.files_dir)
    kit = ScriptKit(project, "build")

    assert kit.here_relative("x.cfg") == f".{os.sep}{os.path.join('scripts', 'x.cfg')}"


def test_kit_requires_existing_script(layout: Layout) -> None:
    with pytest.raises(ScriptNotFoundError):
        ScriptKit(layout.project(), "missing")


def test_execute_sub_script_resolves_next_to_current_unit(layout: Layout) -> None:
    layout.add_script(
        "release/__init__.py",
        """
        def script(project, args, kit):
            return kit.execute_sub_script("publish", ["--dry-run", *args])
        """,
    )
    write(
        layout.scripts_dir / "release" / "publish.py",
        """
        from script_helper import ScriptResult

        def script(project, args, kit):
            return ScriptResult(status=0, error=f"{kit.name}:{' '.join(args)}")
        """,
    )
    project = layout.project()

    result = project.execute_script_file("release", ["v1"])
    assert result.error == "release/publish:--dry-run v1"
