"""Build the final Claude Code command line and hand the process over to it."""
from __future__ import annotations

import os
import shutil
import sys
from dataclasses import dataclass, field
from typing import NoReturn

from .config import Settings
from .errors import LauncherError
from .permission import PermissionDecision

PLACEHOLDER_API_KEY = "local"


@dataclass(frozen=True)
class Launch:
    command: list[str]
    # Overrides applied on top of the inherited environment.
    env: dict[str, str] = field(default_factory=dict)

    def environ(self, base: dict[str, str] | None = None) -> dict[str, str]:
        merged = dict(os.environ if base is None else base)
        merged.update(self.env)
        return merged


def remote_launch(settings: Settings, claude_args: list[str]) -> Launch:
    """Plain passthrough to the cloud backend."""
    return Launch(command=[settings.claude_bin, *claude_args])


def local_launch(
    settings: Settings,
    model: str,
    decision: PermissionDecision,
    claude_args: list[str],
) -> Launch:
    return Launch(
        command=[settings.claude_bin, "--model", model, *decision.claude_args(), *claude_args],
        env={
            "ANTHROPIC_BASE_URL": settings.proxy.url,
            "ANTHROPIC_API_KEY": PLACEHOLDER_API_KEY,
        },
    )


def emit_env(settings: Settings, model: str) -> str:
    """Emit shell exports for pointing Claude Code at the proxy by hand."""
    return (
        f'export ANTHROPIC_BASE_URL="{settings.proxy.url}"\n'
        f'export ANTHROPIC_API_KEY="{PLACEHOLDER_API_KEY}"\n'
        f'export ANTHROPIC_MODEL="{model}"\n'
    )


def launch_claude(launch: Launch) -> NoReturn:
    """Replace the current process with Claude Code."""
    program = launch.command[0]
    if not shutil.which(program):
        raise LauncherError(
            f"'{program}' が見つかりません / '{program}' not found in PATH. Install Claude Code CLI first."
        )

    sys.stdout.flush()
    sys.stderr.flush()
    os.execvpe(program, launch.command, launch.environ())
