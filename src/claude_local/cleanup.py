"""Tear down the proxy this invocation started, on every exit path."""
from __future__ import annotations

import atexit
import logging
import signal
import sys
from types import FrameType
from typing import Any

from .proxy import PidFileRegistry, ProcessHandle

logger = logging.getLogger(__name__)

HANDLED_SIGNALS = tuple(
    getattr(signal, name) for name in ("SIGINT", "SIGTERM", "SIGHUP") if hasattr(signal, name)
)


class CleanupHandler:
    """Releases tracked proxy handles exactly once.

    Install it before anything is spawned. A successful ``os.exec*`` replaces the
    process without running it, which leaves the proxy serving the new program; the
    next invocation reuses or reclaims it through the pid file.
    """

    def __init__(self, registry: PidFileRegistry, grace_s: float = 1.0) -> None:
        self.registry = registry
        self.grace_s = grace_s
        self._handles: list[ProcessHandle] = []
        self._installed = False
        self._done = False
        self._previous: dict[int, Any] = {}

    def track(self, handle: ProcessHandle) -> None:
        self._handles.append(handle)

    @property
    def tracked(self) -> list[ProcessHandle]:
        return list(self._handles)

    def install(self) -> None:
        if self._installed:
            return
        atexit.register(self.run)
        for signum in HANDLED_SIGNALS:
            try:
                self._previous[signum] = signal.signal(signum, self._on_signal)
            except (ValueError, OSError):
                # not the main thread
                logger.debug("could not install handler for signal %d", signum)
        self._installed = True

    def uninstall(self) -> None:
        if not self._installed:
            return
        atexit.unregister(self.run)
        for signum, previous in self._previous.items():
            if previous is not None:
                signal.signal(signum, previous)
        self._previous.clear()
        self._installed = False

    def run(self) -> None:
        if self._done:
            return
        self._done = True
        while self._handles:
            handle = self._handles.pop()
            logger.debug("stopping proxy pid %d", handle.pid)
            self.registry.reclaim(handle, grace_s=self.grace_s)

    def _on_signal(self, signum: int, _frame: FrameType | None) -> None:
        self.run()
        sys.exit(128 + signum)

    def __enter__(self) -> "CleanupHandler":
        self.install()
        return self

    def __exit__(self, *_exc: object) -> None:
        try:
            self.run()
        finally:
            self.uninstall()
