"""Anthropic→Ollama translation proxy: spawning, pid tracking and reclamation.

Only one proxy should be alive per user. The pid file under the runtime data dir
is how a later invocation finds a proxy left behind by an earlier one. Access is
check-then-act without locking, so two invocations racing here can still both spawn.
"""
from __future__ import annotations

import logging
import os
import signal
import subprocess
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import httpx

from .config import RuntimePaths, ServiceEndpoint
from .errors import LauncherError
from .supervisor import PROXY_POLICY, RetryPolicy, ServiceSpec, Sleep, ensure_running

logger = logging.getLogger(__name__)

SERVICE_NAME = "Anthropic→Ollama proxy"
PROBE_TIMEOUT_S = 1.0
STOP_GRACE_S = 3.0

Kill = Callable[[int, int], None]
Reap = Callable[[int], bool]


@dataclass(frozen=True)
class ProcessHandle:
    pid: int
    log_path: Path


def reap_child(pid: int) -> bool:
    """Collect *pid* if it is an exited child of this process. Returns True once reaped."""
    try:
        reaped, _status = os.waitpid(pid, os.WNOHANG)
    except ChildProcessError:
        # not ours, or already collected
        return False
    return reaped == pid


class PidFileRegistry:
    """Persists the proxy's pid as plain text at a well-known path."""

    def __init__(
        self, pid_file: Path, log_path: Path, kill: Kill = os.kill, reap: Reap = reap_child
    ) -> None:
        self.pid_file = pid_file
        self.log_path = log_path
        self._kill = kill
        self._reap = reap

    @classmethod
    def for_paths(cls, paths: RuntimePaths) -> "PidFileRegistry":
        return cls(paths.proxy_pid, paths.proxy_log)

    def register(self, handle: ProcessHandle) -> None:
        self.pid_file.parent.mkdir(parents=True, exist_ok=True)
        self.pid_file.write_text(str(handle.pid), encoding="utf-8")

    def lookup(self) -> ProcessHandle | None:
        try:
            pid = int(self.pid_file.read_text(encoding="utf-8").strip())
        except FileNotFoundError:
            return None
        except ValueError:
            logger.debug("discarding unreadable pid file %s", self.pid_file)
            self.pid_file.unlink(missing_ok=True)
            return None
        return ProcessHandle(pid=pid, log_path=self.log_path)

    def is_alive(self, handle: ProcessHandle) -> bool:
        # a zombie child still answers signal 0
        if self._reap(handle.pid):
            return False
        try:
            self._kill(handle.pid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            # exists, owned by someone else
            return True
        return True

    def reclaim(self, handle: ProcessHandle, grace_s: float = 0.0, sleep: Sleep = time.sleep) -> bool:
        """Terminate *handle* and forget it. Returns True if a live process was signalled.

        Errors from an already-dead process are ignored; the goal is only that no
        stale proxy or pid file remains. The pid file is removed only while it still
        names *handle*, so a newer invocation's record survives.
        """
        signalled = False
        try:
            self._kill(handle.pid, signal.SIGTERM)
            signalled = True
        except ProcessLookupError:
            pass
        except PermissionError as exc:
            logger.debug("cannot signal pid %d: %s", handle.pid, exc)

        if signalled and grace_s > 0:
            deadline = time.monotonic() + grace_s
            while time.monotonic() < deadline and self.is_alive(handle):
                sleep(0.1)
            if self.is_alive(handle):
                try:
                    self._kill(handle.pid, signal.SIGKILL)
                    logger.debug("force-stopped proxy pid %d", handle.pid)
                except ProcessLookupError:
                    pass
                except PermissionError as exc:
                    logger.debug("cannot kill pid %d: %s", handle.pid, exc)

        current = self.lookup()
        if current is not None and current.pid == handle.pid:
            self.pid_file.unlink(missing_ok=True)
        return signalled


def is_ready(endpoint: ServiceEndpoint, timeout_s: float = PROBE_TIMEOUT_S) -> bool:
    """The proxy counts as up once its root path answers at all."""
    try:
        httpx.get(f"{endpoint.url}/", timeout=timeout_s)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.debug("proxy probe failed: %s", exc)
        return False
    return True


def spawn_proxy(script: Path, port: int, log_path: Path) -> ProcessHandle:
    """Run ``<python> <script> <port>`` detached, with output going to *log_path*."""
    log_path.parent.mkdir(parents=True, exist_ok=True)
    command = [sys.executable, str(script), str(port)]
    logger.debug("spawning proxy: %s", command)
    with log_path.open("w", encoding="utf-8") as log_handle:
        proc = subprocess.Popen(
            command,
            stdin=subprocess.DEVNULL,
            stdout=log_handle,
            stderr=subprocess.STDOUT,
            start_new_session=True,
        )
    return ProcessHandle(pid=proc.pid, log_path=log_path)


REMEDIATION = (
    "python3 がインストールされているか確認 / check the interpreter is installed: "
    f"{sys.executable} --version",
)


def ensure_proxy(
    endpoint: ServiceEndpoint,
    registry: PidFileRegistry,
    spawn: Callable[[], ProcessHandle],
    policy: RetryPolicy = PROXY_POLICY,
    sleep: Sleep = time.sleep,
    on_spawn: Callable[[ProcessHandle], None] | None = None,
) -> ProcessHandle | None:
    """Make sure the proxy answers on *endpoint*.

    Returns the handle of a proxy spawned by this call, or None if one was already
    serving. Any proxy recorded in the pid file but not answering is terminated
    first. *on_spawn* sees the new handle before the pid file is written and before
    readiness polling starts, so a failed start-up is still cleaned up.
    """
    spawned: list[ProcessHandle] = []

    def start() -> None:
        stale = registry.lookup()
        if stale is not None:
            logger.info("reclaiming stale proxy pid %d", stale.pid)
            registry.reclaim(stale)
        print("🔄 Anthropic→Ollama 変換プロキシを起動中... / starting translation proxy...")
        try:
            handle = spawn()
        except OSError as exc:
            raise LauncherError(
                f"プロキシを起動できませんでした / could not start the proxy: {exc}"
            ) from exc
        spawned.append(handle)
        if on_spawn is not None:
            on_spawn(handle)
        try:
            registry.register(handle)
        except OSError as exc:
            raise LauncherError(
                f"PID ファイルを書き込めません / cannot write {registry.pid_file}: {exc}"
            ) from exc

    ensure_running(
        ServiceSpec(
            name=SERVICE_NAME,
            probe=lambda: is_ready(endpoint),
            start=start,
            policy=policy,
            hints=REMEDIATION,
            log_path=registry.log_path,
        ),
        sleep=sleep,
    )

    if not spawned:
        return None
    handle = spawned[0]
    print(f"✅ 変換プロキシ起動完了 / proxy ready (PID: {handle.pid}, port: {endpoint.port})")
    return handle
