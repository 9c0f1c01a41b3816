"""Confirmation gate for running Claude Code with --dangerously-skip-permissions.

--dangerously-skip-permissions lets the assistant run tools without asking. Local
models are less accurate than the cloud backend, so unless ``-y`` was given the
user is warned and asked once before launch.
"""
from __future__ import annotations

import sys
from enum import Enum
from typing import Callable, Optional, TextIO

SKIP_PERMISSIONS_FLAG = "--dangerously-skip-permissions"

# Answers that pick "ask each time"; everything else, including Enter, auto-approves.
NO_ANSWERS = frozenset({"n", "no", "いいえ", "否"})

WARNING = """
============================================
 ⚠️  パーミッション確認 / Permission Check
============================================

 claude-local はデフォルトでツール自動許可モード
 (--dangerously-skip-permissions) で起動します。

 This means the AI can execute commands, read/write
 files, and modify your system WITHOUT asking.

 ローカルLLMはクラウドAIより精度が低いため、
 意図しない操作が実行される可能性があります。

 Local LLMs are less accurate than cloud AI.
 Unintended actions may occur.

 本地LLM精度较低，可能执行非预期操作。

--------------------------------------------
 [Y] 自動許可モード (Auto-approve all tools)
 [n] 通常モード (Ask before each tool use)
--------------------------------------------
"""

PROMPT = " 続行しますか？ / Continue? [Y/n]: "

PromptSource = Callable[[], Optional[str]]


class PermissionDecision(Enum):
    AUTO_APPROVE = "auto-approve"
    ASK_EACH_TIME = "ask-each-time"

    @property
    def label(self) -> str:
        if self is PermissionDecision.AUTO_APPROVE:
            return "ツール自動許可 (auto-approve)"
        return "通常モード (ask each time)"

    def claude_args(self) -> list[str]:
        return [SKIP_PERMISSIONS_FLAG] if self is PermissionDecision.AUTO_APPROVE else []


def read_terminal_line() -> str | None:
    """Read one line from the controlling terminal, else stdin, else give up (None)."""
    try:
        with open("/dev/tty", encoding="utf-8", errors="replace") as tty:
            line = tty.readline()
    except OSError:
        line = ""
    else:
        if line:
            return line.rstrip("\r\n")

    try:
        line = sys.stdin.readline()
    except (OSError, ValueError, AttributeError):
        return None
    if not line:
        return None
    return line.rstrip("\r\n")


def interpret_answer(answer: str | None) -> PermissionDecision:
    # no terminal to ask on: auto-approve
    if answer is not None and answer.strip().lower() in NO_ANSWERS:
        return PermissionDecision.ASK_EACH_TIME
    return PermissionDecision.AUTO_APPROVE


def resolve_permission(
    yes: bool,
    prompt: PromptSource = read_terminal_line,
    out: TextIO | None = None,
) -> PermissionDecision:
    """Decide once whether Claude Code may run tools without confirmation."""
    if yes:
        return PermissionDecision.AUTO_APPROVE

    stream = out or sys.stdout
    stream.write(WARNING)
    stream.write("\n")
    stream.write(PROMPT)
    stream.flush()
    decision = interpret_answer(prompt())
    stream.write("\n")

    if decision is PermissionDecision.ASK_EACH_TIME:
        stream.write(" → 通常モード (毎回確認) で起動します / asking before each tool use\n")
    else:
        stream.write(" → 自動許可モードで起動します / auto-approving all tools\n")
    stream.flush()
    return decision
