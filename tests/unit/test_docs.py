from __future__ import annotations

from pathlib import Path


REPO_ROOT = Path(__file__).resolve().parents[2]


def test_readme_matches_current_cli_surface() -> None:
    readme = (REPO_ROOT / "README.md").read_text(encoding="utf-8")

    assert "claude-local --auto" in readme
    assert "claude-local --model" in readme
    assert "claude-local -y" in readme
    assert "claude-local-ctl status" in readme
    assert "claude-local-ctl down" in readme
    assert "claude-local-ctl doctor" in readme
    assert "~/.config/claude-local/config.yaml" in readme
