"""Errors surfaced by the launcher.

Every failure the launcher reports to the user derives from :class:`LauncherError`,
which the CLI catches at the top level and turns into exit code 1.
"""
from __future__ import annotations

from pathlib import Path


class LauncherError(RuntimeError):
    """Base class for fatal launcher errors."""

    def remediation(self) -> list[str]:
        return []


class ConfigError(LauncherError):
    pass


class InsufficientResources(LauncherError):
    def __init__(self, ram_gb: int, minimum_gb: int) -> None:
        super().__init__(
            f"メモリが不足しています ({ram_gb}GB)。最低{minimum_gb}GB必要です。 / "
            f"Not enough memory ({ram_gb}GB); at least {minimum_gb}GB is required."
        )
        self.ram_gb = ram_gb
        self.minimum_gb = minimum_gb


class ServiceUnreachable(LauncherError):
    def __init__(self, service: str, hints: list[str], log_path: Path | None = None) -> None:
        super().__init__(f"{service} が起動できませんでした / {service} could not be started")
        self.service = service
        self.hints = list(hints)
        self.log_path = log_path

    def remediation(self) -> list[str]:
        lines = list(self.hints)
        if self.log_path is not None:
            lines.append(f"ログを確認 / check the log: cat {self.log_path}")
        return lines


class ModelNotFound(LauncherError):
    def __init__(self, model: str, available: list[str] | None) -> None:
        super().__init__(f"モデル {model} が見つかりません / model {model} not found")
        self.model = model
        # None means the catalog could not be listed at all.
        self.available = available

    def remediation(self) -> list[str]:
        lines = [f"ollama pull {self.model}", "", "利用可能なモデル / available models:"]
        if self.available is None:
            lines.append("  (一覧取得失敗 / listing failed)")
        elif not self.available:
            lines.append("  (none)")
        else:
            lines.extend(f"  - {name}" for name in self.available)
        return lines


class ProxyScriptMissing(LauncherError):
    def __init__(self, searched: list[Path]) -> None:
        super().__init__("プロキシスクリプトが見つかりません / proxy script not found")
        self.searched = list(searched)

    def remediation(self) -> list[str]:
        lines = [
            "install.sh を実行するか、anthropic-ollama-proxy.py を同じディレクトリに置いてください",
            "Run install.sh, or set proxy.script in the config file.",
            "Searched:",
        ]
        lines.extend(f"  {path}" for path in self.searched)
        return lines
