from __future__ import annotations

from pathlib import Path
import tomllib


REPO_ROOT = Path(__file__).resolve().parents[2]


def _project_table() -> dict:
    pyproject = REPO_ROOT / "pyproject.toml"
    return tomllib.loads(pyproject.read_text())


def test_runtime_dependencies_are_declared() -> None:
    data = _project_table()
    deps = data["project"]["dependencies"]
    dep_blob = "\n".join(deps).lower()

    assert "httpx" in dep_blob
    assert "platformdirs" in dep_blob
    assert "psutil" in dep_blob
    assert "pyyaml" in dep_blob


def test_version_is_single_sourced_from_package() -> None:
    data = _project_table()
    project = data["project"]

    assert "version" not in project
    assert "dynamic" in project
    assert "version" in project["dynamic"]
    assert data["tool"]["hatch"]["version"]["path"] == "src/claude_local/__init__.py"


def test_console_scripts_point_at_cli() -> None:
    scripts = _project_table()["project"]["scripts"]

    assert scripts["claude-local"] == "claude_local.cli:main"
    assert scripts["claude-local-ctl"] == "claude_local.cli:ctl_main"
