"""Remote backend connectivity probe."""
from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)

REMOTE_PROBE_TIMEOUT_S = 3.0


def is_reachable(url: str, timeout_s: float = REMOTE_PROBE_TIMEOUT_S) -> bool:
    """Return True if *url* answers with any HTTP response within *timeout_s*.

    A missing network is an ordinary outcome here, so every transport failure maps
    to False instead of raising.
    """
    try:
        httpx.get(url, timeout=timeout_s)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.debug("%s unreachable: %s", url, exc)
        return False
    return True

