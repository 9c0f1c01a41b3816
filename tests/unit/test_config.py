from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from claude_local import config
from claude_local.config import ServiceEndpoint
from claude_local.errors import ConfigError, ProxyScriptMissing


def test_load_user_config_creates_default_file(user_dirs: Path) -> None:
    cfg = config.load_user_config()

    assert cfg["model"] is None
    assert cfg["runtime"]["url"] == "http://localhost:11434"
    assert cfg["proxy"]["port"] == 8082
    assert (user_dirs / "config" / "claude-local" / "config.yaml").exists()


def test_user_values_merge_over_defaults(user_dirs: Path) -> None:
    path = config.config_file()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump({"model": "qwen3:8b", "proxy": {"port": 9000}}), encoding="utf-8")

    settings = config.settings_from(config.load_user_config())

    assert settings.model == "qwen3:8b"
    assert settings.proxy == ServiceEndpoint("http", "127.0.0.1", 9000)
    assert settings.runtime == ServiceEndpoint("http", "localhost", 11434)
    assert settings.claude_bin == "claude"


def test_model_flag_overrides_config() -> None:
    settings = config.settings_from({"model": "qwen3:8b"}, model_override="llama3:70b")

    assert settings.model == "llama3:70b"


def test_non_mapping_config_is_rejected(user_dirs: Path) -> None:
    path = config.config_file()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        config.load_user_config()


def test_runtime_paths_are_user_scoped(user_dirs: Path) -> None:
    paths = config.runtime_paths()

    assert paths.base_dir == user_dirs / "data" / "claude-local"
    assert paths.proxy_pid.parent == paths.base_dir
    assert paths.proxy_log.parent == paths.base_dir


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("http://localhost:11434", ServiceEndpoint("http", "localhost", 11434)),
        ("https://ollama.internal", ServiceEndpoint("https", "ollama.internal", 443)),
        ("10.0.0.5:11434", ServiceEndpoint("http", "10.0.0.5", 11434)),
        ("http://[::1]:11434", ServiceEndpoint("http", "::1", 11434)),
    ],
)
def test_service_endpoint_parse(url: str, expected: ServiceEndpoint) -> None:
    assert ServiceEndpoint.parse(url) == expected


def test_service_endpoint_url() -> None:
    assert ServiceEndpoint("http", "127.0.0.1", 8082).url == "http://127.0.0.1:8082"


def test_ipv6_endpoint_url_keeps_brackets() -> None:
    assert ServiceEndpoint.parse("http://[::1]:11434").url == "http://[::1]:11434"


@pytest.mark.parametrize("url", ["http://[::1", "ftp://example.com/", "not a url", "https://api.anthropic.com:99999/"])
def test_malformed_remote_url_is_config_error(url: str) -> None:
    with pytest.raises(ConfigError):
        config.settings_from({"remote_url": url})


def test_find_proxy_script_prefers_configured_path(tmp_path: Path) -> None:
    script = tmp_path / "my-proxy.py"
    script.write_text("", encoding="utf-8")
    settings = config.settings_from({"proxy": {"script": str(script)}})

    assert config.find_proxy_script(settings) == script


def test_find_proxy_script_reports_searched_locations(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config.Path, "home", classmethod(lambda cls: tmp_path / "home"))
    settings = config.settings_from({"proxy": {"script": str(tmp_path / "missing.py")}})

    with pytest.raises(ProxyScriptMissing) as excinfo:
        config.find_proxy_script(settings)

    assert excinfo.value.searched[0] == tmp_path / "missing.py"
    assert excinfo.value.searched[1] == tmp_path / "home" / ".local" / "lib" / "claude-local" / "anthropic-ollama-proxy.py"
