from __future__ import annotations

import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from script_helper.errors import ScriptContractError, ScriptExecutionError
from script_helper.executable import ScriptResult
from script_helper.project import Project

DEFAULT_LAUNCHER = "script-helper"

_OPTIONS_HELP = (
    "All options depend on the script and args you pass will be forwarded to the respective tool "
    "that's being run under the hood."
)


def format_usage(launcher: str, script_names: Sequence[str]) -> str:
    lines = [f"Usage: {launcher} [script] [--flags]", "", "Available Scripts:"]
    lines.extend(f"  {name}" for name in script_names)
    lines.extend(["", "Options:", f"  {_OPTIONS_HELP}"])
    return "\n".join(lines)


def print_usage(launcher: str, script_names: Sequence[str]) -> None:
    print(f"\n{format_usage(launcher, script_names)}\n")


def command_message(launcher: str, script: str, args: Sequence[str]) -> str:
    invoked = " ".join([script, *args]).strip()
    return f'"{launcher} {invoked}"'


def _normalize_results(results: Any) -> list[ScriptResult]:
    if results is None:
        return []
    if isinstance(results, ScriptResult):
        return [results]
    if isinstance(results, (list, tuple)):
        for item in results:
            if not isinstance(item, ScriptResult):
                raise ScriptContractError(
                    f"Script returned a list containing {type(item).__name__}; expected ScriptResult items."
                )
        return list(results)
    raise ScriptContractError(
        f"Script returned {type(results).__name__}; expected a ScriptResult or a list of ScriptResult."
    )


def dispatch(
    project: Project,
    argv: Sequence[str] | None = None,
    *,
    exit_on_finish: bool = True,
) -> ScriptResult | list[ScriptResult] | None:
    """
    Run the script named in `argv` and turn its results into a process outcome.

    `argv` follows `sys.argv`: ``[launcher, script, *args]``. With `exit_on_finish` the process ends
    via `SystemExit` (0 on success, 1 otherwise) unless any result sets ``exit=False``; without it
    the script's own return value is handed back.
    """

    argv = list(sys.argv if argv is None else argv)
    launcher = Path(argv[0]).name if argv and argv[0] else DEFAULT_LAUNCHER
    script = argv[1] if len(argv) > 1 else None
    args = argv[2:]
    logger = project.logger

    if not script or project.has_script(script) is None:
        if script:
            logger.error("Script cannot be found: %s", script)
        print_usage(launcher, project.available_scripts)
        if exit_on_finish:
            raise SystemExit(1)
        return None

    message = command_message(launcher, script, args)
    try:
        results = project.execute_script_file(script, args)
        normalized = _normalize_results(results)
    except Exception as e:
        project.save()
        error = ScriptExecutionError(
            f"Cannot finish execution of {message}: {e}", command_line=message
        )
        logger.error("%s", error)
        raise error from e
    except BaseException:
        # `sys.exit()` or Ctrl-C inside the script: keep pending manifest edits.
        project.save()
        raise

    success = all(result.status == 0 for result in normalized)
    should_exit = exit_on_finish
    console_errors: list[BaseException] = []
    failed_without_message = False

    for result in normalized:
        should_exit = should_exit and result.exit is not False
        if isinstance(result.error, BaseException):
            logger.error("%s", result.error)
            console_errors.append(result.error)
        elif result.error:
            logger.error("%s", result.error)
        elif result.status != 0:
            failed_without_message = True

    if failed_without_message:
        logger.error("%s finished with error (no error message) in command: %s", script, message)

    project.save()
    for error in console_errors:
        print(f"{type(error).__name__}: {error}", file=sys.stderr)

    if should_exit:
        raise SystemExit(0 if success else 1)
    return results


def execute(
    project: Project | None = None,
    argv: Sequence[str] | None = None,
    *,
    exit: bool = True,
    **project_options: Any,
) -> ScriptResult | list[ScriptResult] | None:
    """
    Entry point for a scripts module's ``__main__``.

    Without a ready-made `project`, one is built from `project_options`; the host project is then
    located from the current working directory unless ``cwd`` or ``module_root`` say otherwise.

    Example (``my_scripts/__main__.py``)::

        from script_helper import execute

        if __name__ == "__main__":
            execute()
    """

    if project is None:
        project_options.setdefault("cwd", Path.cwd())
        project = Project(**project_options)
    return dispatch(project, argv, exit_on_finish=exit)
