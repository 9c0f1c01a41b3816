"""CLI entry points for claude-local.

claude-local starts Claude Code against a local Ollama model. Requests go through a
local Anthropic→Ollama translation proxy which claude-local starts and tracks.

Usage:
    claude-local                    # interactive session on the local model
    claude-local -p "question"      # one-shot
    claude-local --auto             # use the cloud backend when it is reachable
    claude-local --model qwen3:8b   # pick the model by hand
    claude-local -y                 # skip the permission prompt (auto-approve)

    claude-local-ctl status|down|logs|models|env|doctor|config
"""
from __future__ import annotations

import argparse
import logging
import os
import shutil
import sys
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path

import httpx
import yaml

from . import __version__
from .cleanup import CleanupHandler
from .config import (
    Settings,
    config_file,
    find_proxy_script,
    load_user_config,
    proxy_script_candidates,
    runtime_paths,
    settings_from,
    write_default_config,
)
from .errors import LauncherError
from .launcher import emit_env, launch_claude, local_launch, remote_launch
from .mode import BackendMode, decide_mode
from .network import is_reachable
from .permission import read_terminal_line, resolve_permission
from .proxy import PidFileRegistry, ensure_proxy, spawn_proxy
from .proxy import is_ready as proxy_ready
from .runtime import ensure_model_available, ensure_runtime, list_models
from .runtime import is_ready as runtime_ready
from .selector import resolve_model, total_memory_bytes


class ArgumentError(Exception):
    pass


@dataclass(frozen=True)
class LaunchOptions:
    auto: bool = False
    model: str | None = None
    yes: bool = False
    claude_args: list[str] = field(default_factory=list)


def parse_launch_args(args: list[str]) -> LaunchOptions:
    """Pick out claude-local's own flags; everything else goes to Claude untouched."""
    auto = False
    yes = False
    model: str | None = None
    claude_args: list[str] = []

    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--auto":
            auto = True
        elif arg in ("-y", "--yes"):
            yes = True
        elif arg == "--model":
            if i + 1 >= len(args):
                raise ArgumentError("--model requires a value")
            model = args[i + 1]
            i += 1
        elif arg.startswith("--model="):
            model = arg.split("=", 1)[1]
            if not model:
                raise ArgumentError("--model requires a value")
        else:
            claude_args.append(arg)
        i += 1

    return LaunchOptions(auto=auto, model=model, yes=yes, claude_args=claude_args)


def _report(exc: LauncherError) -> None:
    print(f"❌ エラー / ERROR: {exc}", file=sys.stderr)
    remediation = exc.remediation()
    if remediation:
        print("", file=sys.stderr)
        print("対処法 / How to fix:", file=sys.stderr)
        for line in remediation:
            print(f"  {line}" if line else "", file=sys.stderr)


def _print_banner(settings: Settings, model: str, permission_label: str) -> None:
    print()
    print("============================================")
    print(" 🤖 Claude Code (ローカルモード / local mode)")
    print(f" Model: {model}")
    print(f" Proxy: {settings.proxy.url} → {settings.runtime.url}")
    print(f" Permissions: {permission_label}")
    print("============================================")
    print()


def run_session(options: LaunchOptions, settings: Settings) -> int:
    """Decide the backend, bring up local services if needed, and exec Claude."""
    mode = decide_mode(options.auto, lambda: is_reachable(settings.remote_url))

    if mode is BackendMode.REMOTE:
        print("🌐 ネットワーク接続あり → 通常の Claude Code を起動 / online, using the cloud backend")
        launch_claude(remote_launch(settings, options.claude_args))
        return 0

    model = resolve_model(settings.model, total_memory_bytes)
    if options.auto:
        print(f"📡 ネットワーク接続なし → ローカルモード / offline, using local model ({model})")

    script = find_proxy_script(settings)
    paths = runtime_paths()
    registry = PidFileRegistry.for_paths(paths)

    with CleanupHandler(registry) as cleanup:
        ensure_runtime(settings.runtime)
        ensure_model_available(settings.runtime, model)
        ensure_proxy(
            settings.proxy,
            registry,
            spawn=lambda: spawn_proxy(script, settings.proxy.port, paths.proxy_log),
            on_spawn=cleanup.track,
        )

        decision = resolve_permission(options.yes, prompt=read_terminal_line)
        _print_banner(settings, model, decision.label)
        launch_claude(local_launch(settings, model, decision, options.claude_args))

    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for ``claude-local``."""
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "WARNING"))
    args_list = argv if argv is not None else sys.argv[1:]

    try:
        options = parse_launch_args(args_list)
    except ArgumentError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2

    try:
        settings = settings_from(load_user_config(), options.model)
        return run_session(options, settings)
    except LauncherError as exc:
        _report(exc)
        return 1


def _tail_file(path: Path, lines: int) -> str:
    if not path.exists():
        return "(no log)"

    with path.open("r", encoding="utf-8", errors="replace") as handle:
        buf = deque(handle, maxlen=lines)
    return "".join(buf).rstrip() or "(empty log)"


def _check_command(name: str) -> tuple[bool, str]:
    found = shutil.which(name)
    if found:
        return True, found
    return False, "not found in PATH"


def show_status(settings: Settings, registry: PidFileRegistry) -> None:
    """Print service status."""
    runtime_up = runtime_ready(settings.runtime)
    print(f"Ollama: {'running' if runtime_up else 'stopped'} ({settings.runtime.url})")

    handle = registry.lookup()
    proxy_up = proxy_ready(settings.proxy)
    if proxy_up and handle is not None:
        print(f"Proxy:  running (pid {handle.pid}, {settings.proxy.url})")
    elif proxy_up:
        print(f"Proxy:  running (untracked, {settings.proxy.url})")
    elif handle is not None and registry.is_alive(handle):
        print(f"Proxy:  not responding (pid {handle.pid})")
    else:
        print("Proxy:  stopped")


def stop_proxy(registry: PidFileRegistry) -> None:
    handle = registry.lookup()
    if handle is None:
        print("Proxy not tracked; nothing to stop")
        return
    if registry.reclaim(handle, grace_s=3.0):
        print(f"Stopped proxy (pid {handle.pid})")
    else:
        print(f"Proxy (pid {handle.pid}) was not running; removed stale pid file")


def show_models(settings: Settings) -> bool:
    try:
        names = list_models(settings.runtime)
    except (httpx.HTTPError, ValueError) as exc:
        print(f"ERROR: could not list models from {settings.runtime.url}: {exc}", file=sys.stderr)
        return False
    if not names:
        print("(no models pulled)")
    for name in names:
        print(name)
    return True


def run_doctor(settings: Settings, registry: PidFileRegistry) -> bool:
    """Run environment checks and return success status."""
    checks: list[tuple[str, bool, str]] = []

    claude_ok, claude_msg = _check_command(settings.claude_bin)
    checks.append(("claude executable", claude_ok, claude_msg))

    ollama_ok, ollama_msg = _check_command("ollama")
    checks.append(("ollama executable", ollama_ok, ollama_msg))

    try:
        script_ok, script_msg = True, str(find_proxy_script(settings))
    except LauncherError:
        script_ok = False
        script_msg = "not found in " + ", ".join(str(p) for p in proxy_script_candidates(settings))
    checks.append(("proxy script", script_ok, script_msg))

    path = config_file()
    checks.append(("config file", path.exists(), str(path)))

    base_dir = registry.pid_file.parent
    data_dir_ok = base_dir.exists() and os.access(base_dir, os.W_OK)
    checks.append(("runtime dir writable", data_dir_ok, str(base_dir)))

    all_good = True
    for name, ok, detail in checks:
        status = "OK" if ok else "FAIL"
        print(f"[{status}] {name}: {detail}")
        if not ok:
            all_good = False

    if not all_good:
        print("\nSuggested fixes:")
        if not claude_ok:
            print("- Install Claude Code CLI and confirm `claude` is on PATH.")
        if not ollama_ok:
            print("- Install Ollama from https://ollama.com and confirm `ollama` is on PATH.")
        if not script_ok:
            print("- Run install.sh, or set `proxy.script` in the config file.")
        if not path.exists():
            print("- Run `claude-local-ctl config init`.")

    return all_good


def config_command(command: str) -> int:
    """Run config subcommands."""
    path = config_file()
    if command == "path":
        print(path)
        return 0

    if command == "show":
        cfg = load_user_config()
        print(yaml.safe_dump(cfg, sort_keys=False).rstrip())
        return 0

    if command == "init":
        written = write_default_config()
        print(f"Initialized config at {written}")
        return 0

    print(f"ERROR: unknown config subcommand '{command}'", file=sys.stderr)
    return 2


def build_ctl_parser() -> argparse.ArgumentParser:
    """Build parser for the service management companion."""
    parser = argparse.ArgumentParser(
        prog="claude-local-ctl",
        description="Manage the background services used by claude-local",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("status", help="Show runtime and proxy status")
    subparsers.add_parser("down", help="Stop the tracked proxy")

    logs_cmd = subparsers.add_parser("logs", help="Show the proxy log")
    logs_cmd.add_argument("--lines", type=int, default=None)

    subparsers.add_parser("models", help="List models pulled into Ollama")

    env_cmd = subparsers.add_parser("env", help="Print environment exports")
    env_cmd.add_argument("--model", default=None)

    subparsers.add_parser("doctor", help="Check readiness")

    config_cmd = subparsers.add_parser("config", help="Manage configuration")
    config_subparsers = config_cmd.add_subparsers(dest="config_command")
    config_subparsers.add_parser("path")
    config_subparsers.add_parser("show")
    config_subparsers.add_parser("init")

    return parser


def ctl_main(argv: list[str] | None = None) -> int:
    """Main entry point for ``claude-local-ctl``."""
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "WARNING"))
    parser = build_ctl_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 2

    if args.command == "config":
        if not args.config_command:
            print("ERROR: config requires one of: path, show, init", file=sys.stderr)
            return 2
        try:
            return config_command(args.config_command)
        except LauncherError as exc:
            _report(exc)
            return 1

    try:
        settings = settings_from(load_user_config(), getattr(args, "model", None))
        paths = runtime_paths()
        registry = PidFileRegistry.for_paths(paths)

        if args.command == "status":
            show_status(settings, registry)
            return 0

        if args.command == "down":
            stop_proxy(registry)
            return 0

        if args.command == "logs":
            print(_tail_file(paths.proxy_log, args.lines or settings.log_lines))
            return 0

        if args.command == "models":
            return 0 if show_models(settings) else 1

        if args.command == "env":
            model = resolve_model(settings.model, total_memory_bytes)
            print(emit_env(settings, model))
            return 0

        if args.command == "doctor":
            return 0 if run_doctor(settings, registry) else 1

        return 0

    except LauncherError as exc:
        _report(exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
