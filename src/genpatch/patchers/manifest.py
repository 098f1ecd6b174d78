"""Manifest patcher – runtime permission declarations."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Callable, Optional

from .. import markers, synth
from ..config import PatchConfig
from ..discovery import find_manifests
from ..locator import find_opening_tag
from .base import LocatorError, Patcher, PatchResult, PatchStatus

_logger = logging.getLogger("genpatch.patchers.manifest")

RECOGNITION_SERVICE = "android.speech.RecognitionService"


def _child_indent(text: str, index: int, default: str = "    ") -> str:
    m = re.compile(r"[^\S\n]*\n([ \t]+)\S").match(text, index)
    return m.group(1) if m else default


def patch_manifest_text(text: str, permissions: list[str], speech_queries: bool = False) -> tuple[str, list[str]]:
    """Return ``(new_text, applied)``; *applied* is empty when nothing changed.

    The permission identifier itself is the idempotence check: a permission
    already declared anywhere in the file is never added again.
    """
    tag = find_opening_tag(text, "manifest")
    if tag is None:
        raise LocatorError("<manifest> opening tag not found")

    indent = _child_indent(text, tag.end())
    missing = [p for p in permissions if p not in text]
    applied: list[str] = []

    if missing:
        marker_line = re.search(
            r"^[ \t]*" + re.escape(markers.PERMISSIONS.comment("xml")) + r"[ \t]*\r?\n",
            text,
            re.MULTILINE,
        )
        if marker_line:
            text = text[:marker_line.end()] + synth.permission_lines(missing, indent) + text[marker_line.end():]
        else:
            block = synth.permissions_block(missing, indent)
            text = text[:tag.end()] + "\n" + block.rstrip("\n") + text[tag.end():]
        applied.extend(missing)
        tag = find_opening_tag(text, "manifest")

    if speech_queries and RECOGNITION_SERVICE not in text and tag is not None:
        block = synth.speech_queries_block(indent, indent)
        text = text[:tag.end()] + "\n" + block.rstrip("\n") + text[tag.end():]
        applied.append("queries:" + RECOGNITION_SERVICE)

    return text, applied


class ManifestPatcher(Patcher):
    """Adds missing ``<uses-permission>`` entries to every manifest in the tree."""

    @property
    def name(self) -> str:
        return "manifest"

    def apply(
        self,
        android_root: Path,
        config: PatchConfig,
        *,
        dry_run: bool = False,
        on_log: Optional[Callable[[str], None]] = None,
    ) -> list[PatchResult]:
        manifests = find_manifests(android_root)
        if not manifests:
            return [self._skipped(f"no AndroidManifest.xml under {android_root}", on_log=on_log)]

        results: list[PatchResult] = []
        for path in manifests:
            try:
                original = self._read_text(path)
                content, applied = patch_manifest_text(
                    original,
                    config.permissions,
                    speech_queries=config.bridge_enabled("speech"),
                )
            except LocatorError as e:
                results.append(self._skipped(f"{e}: {path}", path, on_log=on_log))
                continue
            except OSError as e:
                _logger.error("[manifest] read failed: %s: %s", path, e)
                results.append(self._result(PatchStatus.FAILED, path, f"read failed: {e}"))
                continue
            results.append(self._commit(path, original, content, dry_run=dry_run, applied=applied, on_log=on_log))
        return results
