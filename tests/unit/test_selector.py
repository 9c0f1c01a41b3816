from __future__ import annotations

import pytest

from claude_local import selector
from claude_local.errors import InsufficientResources

GIB = selector.GIB


@pytest.mark.parametrize(
    ("ram_gb", "expected"),
    [
        (64, "qwen3-coder:30b"),
        (32, "qwen3-coder:30b"),
        (31, "qwen3:8b"),
        (16, "qwen3:8b"),
        (15, "qwen3:1.7b"),
        (8, "qwen3:1.7b"),
    ],
)
def test_select_model_tiers(ram_gb: int, expected: str) -> None:
    assert selector.select_model(ram_gb * GIB) == expected


def test_select_model_rejects_less_than_8gb() -> None:
    with pytest.raises(InsufficientResources) as excinfo:
        selector.select_model(8 * GIB - 1)

    assert excinfo.value.ram_gb == 7
    assert "8GB" in str(excinfo.value)


def test_partial_gigabytes_round_down() -> None:
    # 15.9 GiB is reported as 15GB, which lands in the small tier.
    assert selector.select_model(int(15.9 * GIB)) == "qwen3:1.7b"


def test_resolve_model_prefers_configured_value_without_reading_memory() -> None:
    def fail() -> int:
        raise AssertionError("memory should not be consulted")

    assert selector.resolve_model("llama3:8b", memory=fail) == "llama3:8b"


def test_resolve_model_falls_back_to_memory() -> None:
    assert selector.resolve_model(None, memory=lambda: 16 * GIB) == "qwen3:8b"
