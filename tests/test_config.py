from __future__ import annotations

from pathlib import Path

import pytest
from support import write

from script_helper import ConfigError
from script_helper.config import load_module_config


def test_no_config_is_empty(tmp_path: Path) -> None:
    assert load_module_config(tmp_path, "my-scripts") == ({}, None)


def test_tool_table_wins_over_rc_file(tmp_path: Path) -> None:
    write(tmp_path / ".my-scriptsrc.yaml", "source: rc\n")
    manifest = {"tool": {"my_scripts": {"source": "pyproject"}}}

    config, source = load_module_config(tmp_path, "My.Scripts", project_manifest=manifest)
    assert config == {"source": "pyproject"}
    assert source == tmp_path / "pyproject.toml"


def test_rc_file_variants(tmp_path: Path) -> None:
    write(tmp_path / "my-scripts.config.yaml", "source: config-yaml\n")
    assert load_module_config(tmp_path, "my-scripts")[0] == {"source": "config-yaml"}

    write(tmp_path / ".my-scriptsrc.yml", "source: rc-yml\n")
    assert load_module_config(tmp_path, "my-scripts")[0] == {"source": "rc-yml"}


def test_empty_rc_file_is_empty_mapping(tmp_path: Path) -> None:
    rc = write(tmp_path / ".my-scriptsrc.yaml", "")
    assert load_module_config(tmp_path, "my-scripts") == ({}, rc)


def test_non_table_tool_entry_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="expected table"):
        load_module_config(tmp_path, "my-scripts", project_manifest={"tool": {"my-scripts": 3}})


def test_broken_yaml_is_reported(tmp_path: Path) -> None:
    write(tmp_path / ".my-scriptsrc.yaml", "a: [unclosed\n")
    with pytest.raises(ConfigError, match="Failed to parse YAML"):
        load_module_config(tmp_path, "my-scripts")
