from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import pytest

from script_helper import ExecutionFailure, Executor, command, concurrent_args, group
from script_helper.engine import DEFAULT_RUNNER, RUNNER_ENV


def _py(code: str, **options: object):
    return command(sys.executable, ["-c", code], **options)  # type: ignore[arg-type]


def _append(marker: Path, text: str):
    return _py(f"open({str(marker)!r}, 'a', encoding='utf-8').write({text + chr(10)!r})")


def test_concurrent_args_default_layout() -> None:
    argv = concurrent_args({"a": command("cmd1"), "b": command("cmd2")})
    assert argv == [
        "--kill-others-on-fail",
        "--prefix",
        "[{name}]",
        "--names",
        "a,b",
        "--prefix-colors",
        "bgBlue.bold.reset,bgGreen.bold.reset",
        '"cmd1"',
        '"cmd2"',
    ]


def test_concurrent_args_without_kill_others_and_with_args() -> None:
    argv = concurrent_args({"lint": command("ruff", ["check", "."])}, kill_others=False)
    assert "--kill-others-on-fail" not in argv
    assert argv[-1] == '"ruff check ."'


def test_concurrent_args_skips_none_and_cycles_colors() -> None:
    entries = {f"t{i}": command(f"c{i}") for i in range(9)}
    entries["skipped"] = None  # type: ignore[assignment]
    argv = concurrent_args(entries)

    names = argv[argv.index("--names") + 1].split(",")
    colors = argv[argv.index("--prefix-colors") + 1].split(",")
    assert names == [f"t{i}" for i in range(9)]
    assert colors[0] == colors[8] == "bgBlue.bold.reset"
    assert colors[7] == "bgYellow.bold.reset"
    assert argv[-9:] == [f'"c{i}"' for i in range(9)]


def test_runner_defaults_and_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(RUNNER_ENV, raising=False)
    assert Executor().runner == DEFAULT_RUNNER

    monkeypatch.setenv(RUNNER_ENV, "npx --yes concurrently")
    assert Executor().runner == ("npx", "--yes", "concurrently")


def test_run_with_nothing_succeeds() -> None:
    executor = Executor(runner=["does-not-exist-runner"])
    assert executor.run().status == 0
    assert executor.run(None).status == 0
    assert executor.run(group(a=None)).status == 0


def test_run_serial_all_succeed(tmp_path: Path) -> None:
    marker = tmp_path / "marker.txt"
    result = Executor().run(_append(marker, "one"), None, _append(marker, "two"))

    assert result.status == 0
    assert result.previous_results is not None
    assert len(result.previous_results) == 2
    assert marker.read_text(encoding="utf-8").splitlines() == ["one", "two"]


def test_run_serial_stops_at_first_failure(tmp_path: Path) -> None:
    marker = tmp_path / "marker.txt"
    result = Executor().run(
        _append(marker, "one"),
        _py("raise SystemExit(3)"),
        _append(marker, "never"),
    )

    assert result.status == 3
    assert isinstance(result.error, ExecutionFailure)
    assert result.error.returncode == 3
    assert result.previous_results is not None
    assert [r.status for r in result.previous_results] == [0]
    assert marker.read_text(encoding="utf-8").splitlines() == ["one"]


def test_run_without_exit_marks_result() -> None:
    result = Executor().run_without_exit(_py("pass"))
    assert result.status == 0
    assert result.exit is False


def test_missing_command_reports_status_127() -> None:
    result = Executor().run(command("definitely-not-a-real-command-xyz"))
    assert result.status == 127
    assert isinstance(result.error, ExecutionFailure)
    assert isinstance(result.error.os_error, FileNotFoundError)


def test_pipe_captures_output() -> None:
    result = Executor().run(_py("import sys; print('out'); print('err', file=sys.stderr)", stdio="pipe"))
    assert result.status == 0
    assert result.stdout is not None and result.stdout.strip() == "out"
    assert result.stderr is not None and result.stderr.strip() == "err"


def test_group_invokes_runner_with_translated_args(tmp_path: Path) -> None:
    record = tmp_path / "argv.json"
    runner = [
        sys.executable,
        "-c",
        f"import json, sys; json.dump(sys.argv[1:], open({str(record)!r}, 'w', encoding='utf-8'))",
    ]
    entries = {"build": command("make"), "test": command("pytest", ["-q"])}

    result = Executor(runner=runner).run(group(entries, kill_others=False))

    assert result.status == 0
    assert json.loads(record.read_text(encoding="utf-8")) == concurrent_args(entries, kill_others=False)


def test_group_failure_is_single_result() -> None:
    runner = [sys.executable, "-c", "raise SystemExit(1)"]
    result = Executor(runner=runner).run(group(a=command("a"), b=command("b")))
    assert result.status == 1
    assert result.previous_results is None


def test_run_rejects_unknown_executables() -> None:
    with pytest.raises(TypeError):
        Executor().run("echo hi")  # type: ignore[arg-type]


@pytest.mark.skipif(os.name == "nt", reason="POSIX shebang script")
def test_bin_dirs_are_searched_first(tmp_path: Path) -> None:
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    tool = bin_dir / "local-tool-xyz"
    tool.write_text(f"#!{sys.executable}\nprint('local')\n", encoding="utf-8")
    tool.chmod(0o755)

    executor = Executor(bin_dirs=[bin_dir])
    assert executor.environment()["PATH"].split(os.pathsep)[0] == str(bin_dir)

    result = executor.run(command("local-tool-xyz", stdio="pipe"))
    assert result.status == 0
    assert result.stdout is not None and result.stdout.strip() == "local"
