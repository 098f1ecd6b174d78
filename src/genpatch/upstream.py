"""Upstream generator invocation – ``tauri android init`` and the CLI wrapper.

The generated tree is disposable: the generator recreates it from scratch,
so every Android invocation must (re)generate when absent and patch before
the real command runs.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
import sys
import time
from pathlib import Path
from typing import Callable, Mapping, Optional, Sequence

from .config import PatchConfig
from .orchestrator import run_patch

_logger = logging.getLogger("genpatch.upstream")


class GeneratorError(Exception):
    """The upstream generator failed; carries its exit code."""

    def __init__(self, message: str, returncode: int = 1):
        super().__init__(message)
        self.returncode = returncode or 1


def _bin_name(name: str) -> str:
    return f"{name}.cmd" if sys.platform == "win32" else name


def local_bin(project_root: Path, name: str) -> Path:
    return project_root / "node_modules" / ".bin" / _bin_name(name)


def find_tauri_cli(project_root: Path, configured: Optional[str] = None) -> str:
    """Configured binary, else the project-local one, else ``tauri`` on PATH."""
    if configured:
        return configured
    local = local_bin(project_root, "tauri")
    return str(local) if local.exists() else "tauri"


def is_android_invocation(env: Optional[Mapping[str, str]] = None) -> bool:
    """True when npm's ``npm_config_argv`` shows an ``android`` argument.

    npm exposes the original command line to lifecycle scripts as JSON,
    e.g. ``{"original": ["run", "tauri", "android", "dev"]}``.
    """
    src = env if env is not None else os.environ
    raw = src.get("npm_config_argv")
    if not raw:
        return False
    try:
        data = json.loads(raw)
    except ValueError:
        _logger.debug("[upstream] npm_config_argv is not JSON: %r", raw)
        return False
    original = data.get("original") if isinstance(data, dict) else None
    return isinstance(original, list) and "android" in original


def run_command(
    args: Sequence[str],
    *,
    cwd: Path,
    env: Optional[dict[str, str]] = None,
    on_log: Optional[Callable[[str], None]] = None,
) -> int:
    """Run *args*; stream output to *on_log* when given, else inherit the terminal."""
    run_env = os.environ.copy()
    if env:
        run_env.update(env)

    _logger.debug("[upstream] Running: %s (cwd=%s)", " ".join(args), cwd)
    t0 = time.monotonic()
    try:
        if on_log is None:
            rc = subprocess.call(list(args), cwd=str(cwd), env=run_env, shell=sys.platform == "win32")
        else:
            proc = subprocess.Popen(
                list(args),
                cwd=str(cwd),
                env=run_env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                bufsize=1,
                shell=sys.platform == "win32",
            )
            if proc.stdout:
                for line in proc.stdout:
                    on_log(line.rstrip("\n"))
            rc = proc.wait()
    except OSError as e:
        raise GeneratorError(f"cannot run {args[0]}: {e}", 127) from e

    elapsed = time.monotonic() - t0
    if rc != 0:
        _logger.warning("[upstream] Command failed (exit=%d) in %.1fs: %s", rc, elapsed, " ".join(args))
    else:
        _logger.info("[upstream] Command succeeded in %.1fs: %s", elapsed, " ".join(args))
    return rc


Runner = Callable[..., int]


def ensure_generated(config: PatchConfig, *, runner: Runner = run_command) -> bool:
    """Run ``tauri android init`` when the generated tree is absent.

    Returns True when the generator ran. Raises :class:`GeneratorError` when it
    fails or succeeds without producing the tree.
    """
    root = config.android_path
    if root.is_dir():
        return False

    cli = find_tauri_cli(config.project_root, config.tauri_bin)
    _logger.info("[upstream] %s missing, running: %s android init", root, cli)
    rc = runner([cli, "android", "init"], cwd=config.project_root)
    if rc != 0:
        raise GeneratorError(f"tauri android init failed (exit={rc})", rc)
    if not root.is_dir():
        raise GeneratorError(f"tauri android init succeeded but {root} was not created")
    return True


def ensure_init_for_npm(
    config: PatchConfig,
    env: Optional[Mapping[str, str]] = None,
    *,
    runner: Runner = run_command,
) -> int:
    """npm lifecycle helper; returns the exit code for the hook."""
    if not is_android_invocation(env):
        return 0
    if config.android_path.is_dir():
        return 0
    if not config.tauri_bin and not local_bin(config.project_root, "tauri").exists():
        _logger.warning(
            "[upstream] tauri CLI not found at %s; install dependencies first",
            local_bin(config.project_root, "tauri"),
        )
        return 1
    try:
        ensure_generated(config, runner=runner)
    except GeneratorError as e:
        _logger.error("[upstream] %s", e)
        return e.returncode
    return 0


def wrap_tauri(
    args: Sequence[str],
    config: PatchConfig,
    *,
    runner: Runner = run_command,
    patch: Optional[Callable[[], int]] = None,
) -> int:
    """Run the tauri CLI with *args*, generating and patching first for Android.

    * ``android init``: run it, then patch.
    * other ``android`` subcommands: init when the tree is absent, patch,
      then run the original command.
    * anything else: passed through unchanged.

    The first non-zero exit code (generator, patch or final command) is returned.
    """
    args = list(args)
    cli = find_tauri_cli(config.project_root, config.tauri_bin)
    if patch is None:
        patch = lambda: run_patch(config).exit_code  # noqa: E731

    if args[:1] == ["android"]:
        sub = args[1] if len(args) > 1 else ""
        if sub == "init":
            rc = runner([cli, *args], cwd=config.project_root)
            if rc != 0:
                return rc
            return patch()

        if not config.android_path.is_dir():
            _logger.info("[upstream] Android build requested and %s missing, running init", config.android_path)
            rc = runner([cli, "android", "init"], cwd=config.project_root)
            if rc != 0:
                return rc

        if config.android_path.is_dir():
            rc = patch()
            if rc != 0:
                return rc

    return runner([cli, *args], cwd=config.project_root)
