"""Settings fallback – supplies ``tauri.settings.gradle`` when it is referenced but absent."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

from .. import markers, synth
from ..config import PatchConfig
from ..discovery import find_settings_file
from .base import Patcher, PatchResult, PatchStatus

TAURI_SETTINGS = "tauri.settings.gradle"


class SettingsFallbackPatcher(Patcher):
    @property
    def name(self) -> str:
        return "settings"

    def apply(
        self,
        android_root: Path,
        config: PatchConfig,
        *,
        dry_run: bool = False,
        on_log: Optional[Callable[[str], None]] = None,
    ) -> list[PatchResult]:
        settings = find_settings_file(android_root)
        if settings is None:
            return [self._skipped(f"settings.gradle not found under {android_root}", on_log=on_log)]

        try:
            text = self._read_text(settings)
        except OSError as e:
            return [self._result(PatchStatus.FAILED, settings, f"read failed: {e}")]

        target = android_root / TAURI_SETTINGS
        if TAURI_SETTINGS not in text:
            return [self._result(PatchStatus.UNCHANGED, settings, f"{TAURI_SETTINGS} not referenced")]
        if target.exists():
            return [self._result(PatchStatus.UNCHANGED, target, "present")]

        content = synth.settings_fallback(config.settings_project_name)
        return [self._commit(
            target, "", content,
            dry_run=dry_run, applied=[markers.SETTINGS_FALLBACK.text], on_log=on_log,
        )]
