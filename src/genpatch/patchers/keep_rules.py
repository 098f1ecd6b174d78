"""Keep-rules patcher – R8 keep rules for the bridge entry points."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from .. import synth
from ..config import PatchConfig
from ..discovery import find_keep_rules
from .base import Patcher, PatchResult, PatchStatus

_logger = logging.getLogger("genpatch.patchers.keep_rules")


def patch_keep_rules_text(text: str, bridge_keys: list[str]) -> tuple[str, list[str]]:
    """Append one marker-gated keep block per bridge in *bridge_keys*."""
    applied: list[str] = []
    for key in bridge_keys:
        spec = synth.get_bridge(key)
        if spec.keep.present_in(text):
            continue
        if text and not text.endswith("\n"):
            text += "\n"
        if text.strip():
            text += "\n"
        text += synth.keep_rules_block(spec)
        applied.append(spec.keep.text)
    return text, applied


class KeepRulesPatcher(Patcher):
    @property
    def name(self) -> str:
        return "keep-rules"

    def apply(
        self,
        android_root: Path,
        config: PatchConfig,
        *,
        dry_run: bool = False,
        on_log: Optional[Callable[[str], None]] = None,
    ) -> list[PatchResult]:
        files = find_keep_rules(android_root)
        if not files:
            return [self._skipped(f"proguard-rules.pro not found under {android_root / 'app'}", on_log=on_log)]

        enabled = [spec.key for spec in synth.BRIDGES if config.bridge_enabled(spec.key)]
        results: list[PatchResult] = []
        for path in files:
            try:
                original = self._read_text(path)
            except OSError as e:
                _logger.error("[keep-rules] read failed: %s: %s", path, e)
                results.append(self._result(PatchStatus.FAILED, path, f"read failed: {e}"))
                continue
            content, applied = patch_keep_rules_text(original, enabled)
            results.append(self._commit(path, original, content, dry_run=dry_run, applied=applied, on_log=on_log))
        return results
