"""Ollama model runtime: readiness, start-up and catalog checks."""
from __future__ import annotations

import logging
import platform
import shutil
import subprocess
import time
from typing import Any

import httpx

from .config import ServiceEndpoint
from .errors import LauncherError, ModelNotFound
from .supervisor import RUNTIME_POLICY, Readiness, RetryPolicy, ServiceSpec, Sleep, ensure_running

logger = logging.getLogger(__name__)

SERVICE_NAME = "ollama"
PROBE_TIMEOUT_S = 2.0

REMEDIATION = (
    "macOS: Ollama アプリを手動で起動してください / start the Ollama app manually",
    "Linux: ollama serve を実行してください / run `ollama serve`",
)


def tags_url(endpoint: ServiceEndpoint) -> str:
    return f"{endpoint.url}/api/tags"


def is_ready(endpoint: ServiceEndpoint, timeout_s: float = PROBE_TIMEOUT_S) -> bool:
    try:
        response = httpx.get(tags_url(endpoint), timeout=timeout_s)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.debug("ollama probe failed: %s", exc)
        return False
    return response.status_code < 400


def list_models(endpoint: ServiceEndpoint, timeout_s: float = 5.0) -> list[str]:
    """Return the model names the runtime has pulled."""
    response = httpx.get(tags_url(endpoint), timeout=timeout_s)
    response.raise_for_status()
    payload: Any = response.json()
    models = payload.get("models", []) if isinstance(payload, dict) else []
    return [str(m["name"]) for m in models if isinstance(m, dict) and m.get("name")]


def has_model(available: list[str], model: str) -> bool:
    if model in available:
        return True
    # "qwen3" is pulled as "qwen3:latest"
    return ":" not in model and f"{model}:latest" in available


def ensure_model_available(endpoint: ServiceEndpoint, model: str) -> None:
    try:
        available = list_models(endpoint)
    except (httpx.HTTPError, ValueError) as exc:
        logger.debug("catalog listing failed: %s", exc)
        raise ModelNotFound(model, None) from exc

    if not has_model(available, model):
        raise ModelNotFound(model, available)


def _start_commands() -> list[list[str]]:
    if platform.system() == "Darwin":
        return [["open", "-a", "Ollama"], ["ollama", "serve"]]
    return [["ollama", "serve"]]


def start_runtime() -> None:
    """Launch Ollama in the background, trying the macOS app before `ollama serve`."""
    for command in _start_commands():
        if not shutil.which(command[0]):
            continue
        try:
            if command[0] == "open":
                # `open` returns once the app is launched.
                result = subprocess.run(command, capture_output=True, check=False)
                if result.returncode == 0:
                    return
                continue
            logger.debug("spawning %s", command)
            subprocess.Popen(
                command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
            return
        except OSError as exc:
            logger.debug("failed to run %s: %s", command, exc)
    raise LauncherError("ollama が見つかりません / `ollama` not found in PATH. Install it from https://ollama.com")


def ensure_runtime(
    endpoint: ServiceEndpoint,
    policy: RetryPolicy = RUNTIME_POLICY,
    sleep: Sleep = time.sleep,
) -> Readiness:
    def announce_and_start() -> None:
        print("🦙 ollama を起動中... / starting ollama...")
        start_runtime()

    readiness = ensure_running(
        ServiceSpec(
            name=SERVICE_NAME,
            probe=lambda: is_ready(endpoint),
            start=announce_and_start,
            policy=policy,
            hints=REMEDIATION,
        ),
        sleep=sleep,
    )
    if readiness is Readiness.STARTED:
        print("✅ ollama 起動完了 / ollama ready")
    return readiness
