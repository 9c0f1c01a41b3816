"""Backend mode decision: remote passthrough or local model."""
from __future__ import annotations

from enum import Enum
from typing import Callable


class BackendMode(Enum):
    REMOTE = "remote"
    LOCAL = "local"


def decide_mode(auto: bool, remote_reachable: Callable[[], bool]) -> BackendMode:
    """Choose the backend for this invocation.

    Without ``--auto`` the user has asked for local mode, so the network is never
    probed.
    """
    if not auto:
        return BackendMode.LOCAL
    if remote_reachable():
        return BackendMode.REMOTE
    return BackendMode.LOCAL
