"""User configuration and runtime file locations."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import yaml
from platformdirs import user_config_path, user_data_path

from .errors import ConfigError, ProxyScriptMissing

APP_NAME = "claude-local"

DEFAULT_RUNTIME_URL = "http://localhost:11434"
DEFAULT_PROXY_HOST = "127.0.0.1"
DEFAULT_PROXY_PORT = 8082
DEFAULT_REMOTE_URL = "https://api.anthropic.com/"
DEFAULT_CLAUDE_BIN = "claude"
DEFAULT_LOG_LINES = 50

PROXY_SCRIPT_NAME = "anthropic-ollama-proxy.py"

_DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class ServiceEndpoint:
    scheme: str
    host: str
    port: int

    @property
    def url(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{self.scheme}://{host}:{self.port}"

    @classmethod
    def parse(cls, url: str) -> "ServiceEndpoint":
        parts = urlsplit(url if "://" in url else f"http://{url}")
        if not parts.hostname:
            raise ConfigError(f"Invalid service URL: {url!r}")
        scheme = parts.scheme or "http"
        try:
            port = parts.port or _DEFAULT_PORTS.get(scheme, 80)
        except ValueError as exc:
            raise ConfigError(f"Invalid service URL: {url!r}") from exc
        return cls(scheme=scheme, host=parts.hostname, port=port)


def _check_remote_url(url: str) -> str:
    try:
        parts = urlsplit(url)
        parts.port  # raises on a malformed port
    except ValueError as exc:
        raise ConfigError(f"Invalid remote_url: {url!r}") from exc
    if parts.scheme not in _DEFAULT_PORTS or not parts.hostname:
        raise ConfigError(f"Invalid remote_url: {url!r}")
    return url


@dataclass(frozen=True)
class RuntimePaths:
    base_dir: Path
    proxy_pid: Path
    proxy_log: Path


@dataclass(frozen=True)
class Settings:
    model: str | None
    runtime: ServiceEndpoint
    proxy: ServiceEndpoint
    proxy_script: Path | None
    remote_url: str
    claude_bin: str
    log_lines: int


def _default_config() -> dict[str, Any]:
    return {
        "model": None,
        "runtime": {"url": DEFAULT_RUNTIME_URL},
        "proxy": {
            "host": DEFAULT_PROXY_HOST,
            "port": DEFAULT_PROXY_PORT,
            "script": None,
        },
        "remote_url": DEFAULT_REMOTE_URL,
        "claude_bin": DEFAULT_CLAUDE_BIN,
        "logs": {"lines": DEFAULT_LOG_LINES},
    }


def config_dir() -> Path:
    return Path(user_config_path(APP_NAME, appauthor=False))


def config_file() -> Path:
    return config_dir() / "config.yaml"


def _merge_dict(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge_dict(merged[key], value)
        else:
            merged[key] = value
    return merged


def write_default_config() -> Path:
    path = config_file()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(_default_config(), sort_keys=False), encoding="utf-8")
    return path


def load_user_config() -> dict[str, Any]:
    """Load user config and create defaults on first run."""
    config_path = config_file()
    defaults = _default_config()

    if not config_path.exists():
        write_default_config()
        return defaults

    raw = config_path.read_text(encoding="utf-8").strip()
    if not raw:
        write_default_config()
        return defaults

    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid config file {config_path}: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ConfigError(f"Invalid config file format: {config_path}")

    return _merge_dict(defaults, parsed)


def settings_from(config: dict[str, Any], model_override: str | None = None) -> Settings:
    """Freeze a loaded config mapping (plus the ``--model`` override) into settings."""
    runtime_cfg = config.get("runtime") or {}
    proxy_cfg = config.get("proxy") or {}
    logs_cfg = config.get("logs") or {}

    model = model_override or config.get("model") or None
    script = proxy_cfg.get("script")

    try:
        proxy_port = int(proxy_cfg.get("port", DEFAULT_PROXY_PORT))
        log_lines = int(logs_cfg.get("lines", DEFAULT_LOG_LINES))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid numeric value in config: {exc}") from exc

    return Settings(
        model=str(model) if model else None,
        runtime=ServiceEndpoint.parse(str(runtime_cfg.get("url", DEFAULT_RUNTIME_URL))),
        proxy=ServiceEndpoint(
            scheme="http",
            host=str(proxy_cfg.get("host", DEFAULT_PROXY_HOST)),
            port=proxy_port,
        ),
        proxy_script=Path(script).expanduser() if script else None,
        remote_url=_check_remote_url(str(config.get("remote_url", DEFAULT_REMOTE_URL))),
        claude_bin=str(config.get("claude_bin", DEFAULT_CLAUDE_BIN)),
        log_lines=log_lines,
    )


def runtime_paths() -> RuntimePaths:
    """Return user-scoped runtime file paths."""
    base_dir = Path(user_data_path(APP_NAME, appauthor=False))
    base_dir.mkdir(parents=True, exist_ok=True)
    return RuntimePaths(
        base_dir=base_dir,
        proxy_pid=base_dir / "proxy.pid",
        proxy_log=base_dir / "proxy.log",
    )


def proxy_script_candidates(settings: Settings) -> list[Path]:
    candidates: list[Path] = []
    if settings.proxy_script is not None:
        candidates.append(settings.proxy_script)
    candidates.append(Path.home() / ".local" / "lib" / APP_NAME / PROXY_SCRIPT_NAME)
    candidates.append(Path(__file__).resolve().parent / PROXY_SCRIPT_NAME)
    return candidates


def find_proxy_script(settings: Settings) -> Path:
    """Locate the translation proxy script, preferring the configured path."""
    candidates = proxy_script_candidates(settings)
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    raise ProxyScriptMissing(candidates)
