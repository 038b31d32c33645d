from __future__ import annotations

import json
import logging
import os
import shlex
import shutil
import signal
import subprocess
import traceback
from collections.abc import Mapping, Sequence
from pathlib import Path

from script_helper.errors import ExecutionFailure
from script_helper.executable import (
    DEFAULT_SPAWN_OPTIONS,
    Command,
    CommandGroup,
    CommandWithOptions,
    Executable,
    ScriptResult,
    SingleExecutable,
    SpawnOptions,
)

RUNNER_ENV = "SCRIPT_HELPER_RUNNER"
DEFAULT_RUNNER: tuple[str, ...] = ("concurrently",)
PREFIX_COLORS: tuple[str, ...] = (
    "bgBlue",
    "bgGreen",
    "bgMagenta",
    "bgCyan",
    "bgWhite",
    "bgRed",
    "bgBlack",
    "bgYellow",
)

_EXIT_COMMAND_NOT_FOUND = 127
_EXIT_COMMAND_NOT_EXECUTABLE = 126


def concurrent_args(
    entries: Mapping[str, SingleExecutable | None],
    *,
    kill_others: bool = True,
) -> list[str]:
    """
    Translate named executables into arguments for the concurrent runner.

    Entries set to None are dropped. Names, colors and commands keep the mapping's iteration order;
    colors cycle through `PREFIX_COLORS` by position.
    """

    active = {name: entry for name, entry in entries.items() if entry is not None}
    names = list(active)
    colors = ",".join(
        f"{PREFIX_COLORS[i % len(PREFIX_COLORS)]}.bold.reset" for i in range(len(names))
    )

    argv: list[str] = []
    if kill_others:
        argv.append("--kill-others-on-fail")
    argv.extend(["--prefix", "[{name}]", "--names", ",".join(names), "--prefix-colors", colors])
    argv.extend(json.dumps(entry.render(), ensure_ascii=False) for entry in active.values())
    return argv


def _runner_from_env() -> tuple[str, ...]:
    raw = os.environ.get(RUNNER_ENV)
    if raw is None or not raw.strip():
        return DEFAULT_RUNNER
    return tuple(shlex.split(raw))


def _signal_name(signum: int) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return f"signal {signum}"


class Executor:
    def __init__(
        self,
        *,
        runner: Sequence[str] | None = None,
        bin_dirs: Sequence[Path] = (),
        cwd: Path | None = None,
        debug: bool = False,
        logger: logging.Logger | None = None,
    ) -> None:
        self._runner = tuple(runner) if runner is not None else _runner_from_env()
        if not self._runner:
            raise ValueError("Concurrent runner argv must not be empty.")
        self._bin_dirs = tuple(Path(p) for p in bin_dirs)
        self._cwd = cwd
        self._debug = debug
        self._logger = logger or logging.getLogger(__name__)

    @property
    def runner(self) -> tuple[str, ...]:
        return self._runner

    def run(self, *executables: Executable | None) -> ScriptResult:
        """
        Run executables serially, stopping at the first failure.

        A failing result carries the earlier successes in `previous_results`; when everything
        succeeds the returned result is `status=0` with every individual result attached.
        """

        if len(executables) > 1:
            results: list[ScriptResult] = []
            for executable in executables:
                if executable is None:
                    continue
                result = self.run(executable)
                if result.status != 0:
                    result.previous_results = results
                    return result
                results.append(result)
            return ScriptResult(status=0, previous_results=results)

        if not executables or executables[0] is None:
            return ScriptResult(status=0)

        executable = executables[0]
        if isinstance(executable, CommandGroup):
            entries = executable.active_entries()
            if not entries:
                return ScriptResult(status=0)
            argv = [*self._runner, *concurrent_args(entries, kill_others=executable.kill_others)]
            return self.spawn(argv)
        if isinstance(executable, (Command, CommandWithOptions)):
            return self.spawn(executable.argv, executable.options)
        raise TypeError(
            "Expected Command, CommandWithOptions, CommandGroup or None, "
            f"got {type(executable).__name__}."
        )

    def run_without_exit(self, *executables: Executable | None) -> ScriptResult:
        result = self.run(*executables)
        result.exit = False
        return result

    def environment(self) -> dict[str, str]:
        env = dict(os.environ)
        extra = [str(p) for p in self._bin_dirs if p.is_dir()]
        if extra:
            current = env.get("PATH", "")
            env["PATH"] = os.pathsep.join([*extra, current] if current else extra)
        return env

    def _resolve_argv(self, argv: list[str], *, env: Mapping[str, str]) -> list[str]:
        cmd = argv[0]
        if any(sep and sep in cmd for sep in ("/", "\\", os.path.sep, os.path.altsep)):
            return argv

        resolved = shutil.which(cmd, path=env.get("PATH"))
        if resolved is None:
            return argv

        # `subprocess.run()` cannot execute `.cmd`/`.bat` shims directly on Windows.
        if os.name == "nt" and Path(resolved).suffix.lower() in {".cmd", ".bat"}:
            comspec = env.get("ComSpec", "cmd.exe")
            return [comspec, "/d", "/c", resolved, *argv[1:]]
        return [resolved, *argv[1:]]

    def spawn(
        self,
        argv: Sequence[str],
        options: SpawnOptions = DEFAULT_SPAWN_OPTIONS,
    ) -> ScriptResult:
        argv = [str(a) for a in argv]
        if not argv:
            raise ValueError("Cannot spawn an empty argv.")
        command_line = " ".join(argv)

        if self._debug:
            stack = "".join(traceback.format_stack()).rstrip()
            self._logger.debug("Stack trace for %s\n%s", argv[0], stack)
        self._logger.info("+ %s", command_line)

        env = self.environment()
        resolved_argv = self._resolve_argv(argv, env=env)
        if resolved_argv != argv:
            self._logger.debug("  -> %s", " ".join(resolved_argv))

        if options.stdio == "inherit":
            stdin = stdout = stderr = None
        elif options.stdio == "pipe":
            stdin, stdout, stderr = subprocess.DEVNULL, subprocess.PIPE, subprocess.PIPE
        else:
            stdin = stdout = stderr = subprocess.DEVNULL
        capture = options.stdio == "pipe"

        try:
            cp = subprocess.run(
                resolved_argv,
                cwd=str(self._cwd) if self._cwd is not None else None,
                env=env,
                stdin=stdin,
                stdout=stdout,
                stderr=stderr,
                text=capture,
                encoding=(options.encoding or "utf-8") if capture else None,
                errors="replace" if capture else None,
                check=False,
            )
        except FileNotFoundError as e:
            return ScriptResult(
                status=_EXIT_COMMAND_NOT_FOUND,
                error=ExecutionFailure(
                    f"Command not found: {argv[0]!r}", argv=argv, os_error=e
                ),
            )
        except OSError as e:
            return ScriptResult(
                status=_EXIT_COMMAND_NOT_EXECUTABLE,
                error=ExecutionFailure(
                    f"Failed to execute {argv[0]!r}: {e}", argv=argv, os_error=e
                ),
            )

        returncode = cp.returncode
        error: ExecutionFailure | None = None
        if returncode < 0:
            error = ExecutionFailure(
                f"Command terminated by {_signal_name(-returncode)}: {command_line}",
                argv=argv,
                returncode=returncode,
            )
        elif returncode != 0:
            error = ExecutionFailure(
                f"Command failed with exit code {returncode}: {command_line}",
                argv=argv,
                returncode=returncode,
            )
        return ScriptResult(
            status=returncode,
            error=error,
            stdout=cp.stdout if capture else None,
            stderr=cp.stderr if capture else None,
        )
