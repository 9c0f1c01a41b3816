from __future__ import annotations

from pathlib import Path

import pytest

from claude_local import config


@pytest.fixture(autouse=True)
def user_dirs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep config and runtime files inside the test's tmp dir."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr(config, "user_config_path", lambda name, appauthor=False: tmp_path / "config" / name)
    monkeypatch.setattr(config, "user_data_path", lambda name, appauthor=False: tmp_path / "data" / name)
    return tmp_path
