"""
Packaging Tests
Project metadata in pyproject.toml only points at files that ship with the
package.
"""

from pathlib import Path

import pytest

tomllib = pytest.importorskip("tomllib")

ROOT = Path(__file__).resolve().parent.parent


def _project():
    with open(ROOT / "pyproject.toml", "rb") as f:
        return tomllib.load(f)["project"]


def test_no_internal_document_used_as_readme():
    readme = _project().get("readme")
    if readme is not None:
        name = readme if isinstance(readme, str) else readme.get("file", "")
        assert Path(name).name.upper().startswith("README")
        assert (ROOT / name).is_file()


def test_console_script_targets_package():
    scripts = _project().get("scripts", {})
    assert all(target.startswith("drowsiness_fusion.") for target in scripts.values())
