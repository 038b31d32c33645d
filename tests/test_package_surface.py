from __future__ import annotations

import script_helper


def test_version_is_a_string() -> None:
    assert isinstance(script_helper.__version__, str)
    assert script_helper.__version__


def test_public_names_are_exported() -> None:
    for name in script_helper.__all__:
        assert hasattr(script_helper, name), name
