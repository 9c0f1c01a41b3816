"""Generic "make sure this service is up" loop shared by the runtime and the proxy."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable

from .errors import ServiceUnreachable

logger = logging.getLogger(__name__)

Probe = Callable[[], bool]
Sleep = Callable[[float], None]


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int
    interval_s: float

    @property
    def budget_s(self) -> float:
        return self.max_attempts * self.interval_s


# Ollama can take a while to come up, the proxy should not.
RUNTIME_POLICY = RetryPolicy(max_attempts=15, interval_s=2.0)
PROXY_POLICY = RetryPolicy(max_attempts=10, interval_s=1.0)


class Readiness(Enum):
    ALREADY_RUNNING = "already-running"
    STARTED = "started"


@dataclass(frozen=True)
class ServiceSpec:
    name: str
    probe: Probe
    start: Callable[[], object]
    policy: RetryPolicy
    hints: tuple[str, ...] = ()
    log_path: Path | None = None


def poll_until(probe: Probe, policy: RetryPolicy, sleep: Sleep = time.sleep) -> bool:
    """Sleep then probe, up to ``policy.max_attempts`` times. True on first success."""
    for attempt in range(1, policy.max_attempts + 1):
        sleep(policy.interval_s)
        if probe():
            logger.debug("probe succeeded on attempt %d/%d", attempt, policy.max_attempts)
            return True
    return False


def ensure_running(service: ServiceSpec, sleep: Sleep = time.sleep) -> Readiness:
    """Start *service* unless its probe already passes, then wait for readiness.

    Raises :class:`ServiceUnreachable` once the retry budget is spent.
    """
    if service.probe():
        logger.debug("%s already running", service.name)
        return Readiness.ALREADY_RUNNING

    logger.debug("starting %s (budget %.0fs)", service.name, service.policy.budget_s)
    service.start()

    if poll_until(service.probe, service.policy, sleep):
        return Readiness.STARTED

    raise ServiceUnreachable(service.name, list(service.hints), service.log_path)
