from __future__ import annotations

from collections.abc import Sequence


class ScriptHelperError(RuntimeError):
    pass


class BoundaryError(ScriptHelperError):
    pass


class ConfigError(ScriptHelperError):
    pass


class ManifestError(ScriptHelperError):
    pass


class ScriptNotFoundError(ScriptHelperError):
    def __init__(self, name: str, scripts_dir: object) -> None:
        super().__init__(f'Script "{name}" cannot be found in "{scripts_dir}"')
        self.name = name
        self.scripts_dir = scripts_dir


class ScriptContractError(ScriptHelperError):
    pass


class ScriptExecutionError(ScriptHelperError):
    """Wraps an exception that escaped a script entry point.

    The original exception is always attached as ``__cause__``.
    """

    def __init__(self, message: str, *, command_line: str) -> None:
        super().__init__(message)
        self.command_line = command_line


class ExecutionFailure(ScriptHelperError):
    """Failure detail for a spawned command.

    Stored in ``ScriptResult.error``; the engine never raises it.
    """

    def __init__(
        self,
        message: str,
        *,
        argv: Sequence[str],
        returncode: int | None = None,
        os_error: OSError | None = None,
    ) -> None:
        super().__init__(message)
        self.argv = list(argv)
        self.returncode = returncode
        self.os_error = os_error
