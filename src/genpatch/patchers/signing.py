"""Signing patcher – env-gated release signing for the generated Gradle build.

Two edits, each idempotent on its own:

* ``<android_root>/<script_name>`` holds the signing Gradle script; it is
  rewritten only when it lacks the current script marker revision.
* The app build script gets one ``apply`` line for it, placed after the
  ``plugins { … }`` block (or at the top when there is none).

:func:`evaluate_signing` applies the same gate as the Gradle script so the
CLI can tell ahead of a build whether release signing will be active.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Mapping, Optional

from .. import markers, synth
from ..config import PatchConfig, SigningConfig
from ..discovery import BuildScript, find_app_build_file
from ..locator import BlockBoundaryLocator, get_locator
from .base import Patcher, PatchResult, PatchStatus

_logger = logging.getLogger("genpatch.patchers.signing")

_PLUGINS_BLOCK = re.compile(r"^[ \t]*plugins[ \t]*\{", re.MULTILINE)


@dataclass
class SigningStatus:
    """Whether the release signing gate opens for a given environment."""

    active: bool
    missing: list[str] = field(default_factory=list)
    keystore: Optional[Path] = None
    reason: str = ""


def evaluate_signing(
    env: Optional[Mapping[str, str]] = None,
    base_dir: Optional[Path] = None,
    signing: Optional[SigningConfig] = None,
) -> SigningStatus:
    """Evaluate the signing gate.

    *base_dir* resolves a relative keystore path the way Gradle's ``file()``
    does inside the app module (pass ``<android_root>/app``).
    """
    src = env if env is not None else os.environ
    signing = signing or SigningConfig()
    missing = [name for name in signing.env_vars if not src.get(name)]
    if missing:
        return SigningStatus(False, missing, None, f"missing {', '.join(missing)}")

    keystore = Path(src[signing.keystore_path_env]).expanduser()
    if not keystore.is_absolute() and base_dir is not None:
        keystore = base_dir / keystore
    if not keystore.exists():
        return SigningStatus(False, [], keystore, f"keystore not found: {keystore}")
    return SigningStatus(True, [], keystore, "release signing active")


def inject_apply_line(
    text: str,
    script_name: str,
    kind: str,
    locator: Optional[BlockBoundaryLocator] = None,
) -> tuple[str, bool]:
    """Return ``(text, changed)`` with the apply line for *script_name* in place."""
    if script_name in text:
        return text, False
    block = synth.signing_apply_block(script_name, kind)

    m = _PLUGINS_BLOCK.search(text)
    if m:
        close = (locator or get_locator()).find_block_end(text, m.end() - 1)
        if close is not None:
            nl = text.find("\n", close)
            if nl < 0:
                return text + "\n\n" + block, True
            return text[:nl + 1] + "\n" + block + text[nl + 1:], True
        _logger.warning("[signing] plugins block not closed; apply line goes to the top")

    return block + "\n" + text, True


class SigningPatcher(Patcher):
    @property
    def name(self) -> str:
        return "signing"

    def apply(
        self,
        android_root: Path,
        config: PatchConfig,
        *,
        dry_run: bool = False,
        on_log: Optional[Callable[[str], None]] = None,
    ) -> list[PatchResult]:
        build = find_app_build_file(android_root)
        if build is None:
            return [self._skipped(f"app/build.gradle(.kts) not found under {android_root}", on_log=on_log)]

        results = [self._write_script(android_root / config.signing.script_name, config.signing, dry_run, on_log)]
        results.append(self._patch_build_file(build, config, dry_run, on_log))

        status = evaluate_signing(base_dir=android_root / "app", signing=config.signing)
        msg = f"[signing] {status.reason}"
        _logger.info(msg)
        self._log(on_log, msg)
        return results

    def _write_script(
        self,
        path: Path,
        signing: SigningConfig,
        dry_run: bool,
        on_log: Optional[Callable[[str], None]],
    ) -> PatchResult:
        content = synth.signing_script(
            signing.keystore_path_env,
            signing.keystore_password_env,
            signing.key_alias_env,
            signing.key_password_env,
        )
        try:
            original = self._read_text(path) if path.exists() else ""
        except OSError as e:
            return self._result(PatchStatus.FAILED, path, f"read failed: {e}")
        if markers.SIGNING_SCRIPT.present_in(original):
            return self._commit(path, original, original, dry_run=dry_run, on_log=on_log)
        return self._commit(
            path, original, content,
            dry_run=dry_run, applied=[markers.SIGNING_SCRIPT.text], on_log=on_log,
        )

    def _patch_build_file(
        self,
        build: BuildScript,
        config: PatchConfig,
        dry_run: bool,
        on_log: Optional[Callable[[str], None]],
    ) -> PatchResult:
        try:
            original = self._read_text(build.path)
        except OSError as e:
            return self._result(PatchStatus.FAILED, build.path, f"read failed: {e}")
        content, changed = inject_apply_line(
            original, config.signing.script_name, build.kind, get_locator(config.locator),
        )
        applied = [markers.SIGNING_APPLY.text] if changed else []
        return self._commit(build.path, original, content, dry_run=dry_run, applied=applied, on_log=on_log)
