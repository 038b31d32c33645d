from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from packaging.utils import canonicalize_name

from script_helper.errors import ConfigError


def _tool_table_keys(module_name: str) -> list[str]:
    canonical = canonicalize_name(module_name)
    keys = [module_name, canonical, canonical.replace("-", "_")]
    return list(dict.fromkeys(keys))


def _rc_file_names(module_name: str) -> list[str]:
    names: list[str] = []
    for key in _tool_table_keys(module_name):
        names.extend([f".{key}rc.yaml", f".{key}rc.yml", f"{key}.config.yaml"])
    return list(dict.fromkeys(names))


def _load_yaml_mapping(path: Path) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Failed to read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML in {path}: {e}") from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(raw).__name__}.")
    return raw


def load_module_config(
    project_root: Path,
    module_name: str,
    *,
    project_manifest: dict[str, Any] | None = None,
) -> tuple[dict[str, Any], Path | None]:
    """
    Find the scripts module's configuration inside the host project.

    Lookup order:
      1. ``[tool.<module-name>]`` in the project's ``pyproject.toml``
      2. ``.<module-name>rc.yaml`` / ``.<module-name>rc.yml`` / ``<module-name>.config.yaml``
         in the project root

    Returns ``(config, source_file)``; ``({}, None)`` when nothing is configured.
    """

    project_root = Path(project_root)
    tool = (project_manifest or {}).get("tool")
    if isinstance(tool, dict):
        for key in _tool_table_keys(module_name):
            if key not in tool:
                continue
            table = tool[key]
            if not isinstance(table, dict):
                raise ConfigError(
                    f"Invalid [tool.{key}] in {project_root / 'pyproject.toml'} (expected table)."
                )
            return dict(table), project_root / "pyproject.toml"

    for file_name in _rc_file_names(module_name):
        candidate = project_root / file_name
        if candidate.is_file():
            return _load_yaml_mapping(candidate), candidate

    return {}, None
