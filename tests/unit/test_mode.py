from __future__ import annotations

import httpx
import pytest

from claude_local import network
from claude_local.mode import BackendMode, decide_mode


class _Probe:
    def __init__(self, result: bool) -> None:
        self.result = result
        self.calls = 0

    def __call__(self) -> bool:
        self.calls += 1
        return self.result


def test_auto_and_reachable_is_remote() -> None:
    probe = _Probe(True)

    assert decide_mode(True, probe) is BackendMode.REMOTE
    assert probe.calls == 1


def test_auto_and_unreachable_is_local() -> None:
    assert decide_mode(True, _Probe(False)) is BackendMode.LOCAL


@pytest.mark.parametrize("reachable", [True, False])
def test_without_auto_network_is_never_probed(reachable: bool) -> None:
    probe = _Probe(reachable)

    assert decide_mode(False, probe) is BackendMode.LOCAL
    assert probe.calls == 0


def test_is_reachable_counts_any_http_response(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: dict[str, object] = {}

    def fake_get(url: str, timeout: float) -> httpx.Response:
        seen["url"] = url
        seen["timeout"] = timeout
        return httpx.Response(404)

    monkeypatch.setattr(network.httpx, "get", fake_get)

    assert network.is_reachable("https://api.anthropic.com/") is True
    assert seen == {"url": "https://api.anthropic.com/", "timeout": network.REMOTE_PROBE_TIMEOUT_S}


@pytest.mark.parametrize(
    "error",
    [
        httpx.ConnectError("no route"),
        httpx.ConnectTimeout("timed out"),
        httpx.ReadTimeout("slow"),
    ],
)
def test_is_reachable_is_false_on_network_errors(monkeypatch: pytest.MonkeyPatch, error: Exception) -> None:
    def fake_get(url: str, timeout: float) -> httpx.Response:
        raise error

    monkeypatch.setattr(network.httpx, "get", fake_get)

    assert network.is_reachable("https://api.anthropic.com/", timeout_s=0.1) is False


def test_is_reachable_is_false_on_malformed_url() -> None:
    assert network.is_reachable("http://[::1", timeout_s=0.5) is False
