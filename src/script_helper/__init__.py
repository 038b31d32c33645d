from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as package_version

from script_helper.boundary import (
    ProjectBoundary,
    get_package_and_dir,
    resolve_boundary,
    resolve_module_root,
    resolve_project_root,
)
from script_helper.dispatch import dispatch, execute
from script_helper.engine import Executor, concurrent_args
from script_helper.errors import (
    BoundaryError,
    ConfigError,
    ExecutionFailure,
    ManifestError,
    ScriptContractError,
    ScriptExecutionError,
    ScriptHelperError,
    ScriptNotFoundError,
)
from script_helper.executable import (
    Command,
    CommandGroup,
    CommandWithOptions,
    Executable,
    ScriptResult,
    SpawnOptions,
    command,
    group,
)
from script_helper.manifest import Manifest
from script_helper.project import Project
from script_helper.registry import list_scripts, load_script, resolve_script
from script_helper.script_kit import ScriptKit
from script_helper.util import replace_argument_name


def _resolve_version() -> str:
    for distribution_name in ("script-helper", "script_helper"):
        try:
            return package_version(distribution_name)
        except PackageNotFoundError:
            continue
    return "0+unknown"


__version__ = _resolve_version()

__all__ = [
    "__version__",
    "BoundaryError",
    "Command",
    "CommandGroup",
    "CommandWithOptions",
    "ConfigError",
    "Executable",
    "ExecutionFailure",
    "Executor",
    "Manifest",
    "ManifestError",
    "Project",
    "ProjectBoundary",
    "ScriptContractError",
    "ScriptExecutionError",
    "ScriptHelperError",
    "ScriptKit",
    "ScriptNotFoundError",
    "ScriptResult",
    "SpawnOptions",
    "command",
    "concurrent_args",
    "dispatch",
    "execute",
    "get_package_and_dir",
    "group",
    "list_scripts",
    "load_script",
    "replace_argument_name",
    "resolve_boundary",
    "resolve_module_root",
    "resolve_project_root",
    "resolve_script",
]
