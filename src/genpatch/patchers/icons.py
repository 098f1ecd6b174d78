"""Icon resource syncer – copies launcher icons over the generator defaults."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Callable, Optional

from ..config import PatchConfig
from .base import Patcher, PatchResult, PatchStatus

_logger = logging.getLogger("genpatch.patchers.icons")


def resource_dir(android_root: Path) -> Path:
    return android_root / "app" / "src" / "main" / "res"


def count_files(root: Path) -> int:
    return sum(1 for p in root.rglob("*") if p.is_file())


class IconSyncPatcher(Patcher):
    """Recursive, overwriting copy of each configured resource directory.

    There is no marker here: the copy is repeated on every run and reports
    MODIFIED whenever at least one file was copied.
    """

    @property
    def name(self) -> str:
        return "icons"

    def apply(
        self,
        android_root: Path,
        config: PatchConfig,
        *,
        dry_run: bool = False,
        on_log: Optional[Callable[[str], None]] = None,
    ) -> list[PatchResult]:
        source = config.icons_path
        dest = resource_dir(android_root)
        if not source.is_dir():
            return [self._skipped(f"icon source not found: {source}", source, on_log=on_log)]
        if not dest.is_dir():
            return [self._skipped(f"resource directory not found: {dest}", dest, on_log=on_log)]

        copied: list[str] = []
        total = 0
        logs: list[str] = []
        for name in config.icon_dirs:
            src_dir = source / name
            if not src_dir.is_dir():
                _logger.debug("[icons] no %s in %s", name, source)
                continue
            n = count_files(src_dir)
            if not dry_run:
                try:
                    shutil.copytree(src_dir, dest / name, dirs_exist_ok=True)
                except (OSError, shutil.Error) as e:
                    msg = f"[icons] copy failed: {src_dir} -> {dest / name}: {e}"
                    _logger.error(msg)
                    self._log(on_log, msg)
                    return [self._result(PatchStatus.FAILED, dest, f"copy failed: {e}", applied=copied, logs=logs + [msg])]
            copied.append(name)
            total += n
            msg = f"[icons] {'would copy' if dry_run else 'copied'} {name} ({n} files)"
            logs.append(msg)
            self._log(on_log, msg)

        if not copied:
            return [self._skipped(f"none of {', '.join(config.icon_dirs)} present in {source}", source, on_log=on_log)]

        _logger.info("[icons] %d files from %d directories into %s", total, len(copied), dest)
        return [self._result(PatchStatus.MODIFIED, dest, f"{total} files", applied=copied, logs=logs)]
