"""Default model selection from installed memory."""
from __future__ import annotations

from typing import Callable

import psutil

from .errors import InsufficientResources

GIB = 1024 ** 3

# (minimum whole GiB, model) from largest to smallest.
MODEL_TIERS: tuple[tuple[int, str], ...] = (
    (32, "qwen3-coder:30b"),
    (16, "qwen3:8b"),
    (8, "qwen3:1.7b"),
)
MINIMUM_GB = MODEL_TIERS[-1][0]


def total_memory_bytes() -> int:
    return int(psutil.virtual_memory().total)


def select_model(total_bytes: int) -> str:
    """Pick the largest model tier that fits in *total_bytes* of RAM."""
    ram_gb = total_bytes // GIB
    for minimum_gb, model in MODEL_TIERS:
        if ram_gb >= minimum_gb:
            return model
    raise InsufficientResources(ram_gb, MINIMUM_GB)


def resolve_model(configured: str | None, memory: Callable[[], int] = total_memory_bytes) -> str:
    """Use the flag/config model when present, otherwise select by memory.

    *memory* is only called when nothing was configured.
    """
    if configured:
        return configured
    return select_model(memory())
