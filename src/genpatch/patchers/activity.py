"""Activity patcher – native bridges inside the generated main activity.

Works on the Kotlin source of the activity class as plain text:

1. retired immersive-fullscreen code is removed first;
2. a body-less class declaration gets empty ``{ }`` so members can be added;
3. for each enabled bridge the hook goes into the existing lifecycle
   callback, or a fresh override is synthesized when there is none;
4. new core blocks and overrides are spliced as one batch before the class
   body's closing brace;
5. every bridge entry point is made to carry ``@androidx.annotation.Keep``.

Core and hook markers are checked independently, so a file patched halfway by
an interrupted run is completed rather than duplicated.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from .. import markers, synth
from ..config import PatchConfig
from ..discovery import find_activity_sources
from ..locator import (
    BlockBoundaryLocator,
    ClassDeclaration,
    body_indent,
    declares_method,
    detect_indent_unit,
    find_class,
    find_method,
    get_locator,
    line_start,
)
from ..markers import REQUEST_CODES
from .base import LocatorError, Patcher, PatchResult, PatchStatus, is_crlf

_logger = logging.getLogger("genpatch.patchers.activity")

IMMERSIVE_HELPER = "genpatchApplyImmersiveFullscreen"

_IMMERSIVE_CALL = re.compile(
    r"^[ \t]*(?:if\s*\(\s*\w+\s*\)\s*)?" + IMMERSIVE_HELPER + r"\(\)[ \t]*\r?\n",
    re.MULTILINE,
)

_KEEP_NAMES = ("@androidx.annotation.Keep", "@Keep")


@dataclass
class ActivityEdit:
    """Result of patching one activity source text."""

    text: str
    applied: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Retired feature cleanup
# ---------------------------------------------------------------------------

def _drop_blank_seam(text: str, at: int) -> str:
    """Collapse the double blank line left behind when a block is cut at *at*."""
    if text[max(at - 2, 0):at] == "\n\n" and text[at:at + 1] == "\n":
        return text[:at] + text[at + 1:]
    return text


def remove_retired_immersive(text: str, locator: BlockBoundaryLocator) -> ActivityEdit:
    """Strip the immersive-fullscreen helper and every call to it."""
    edit = ActivityEdit(text)
    marker = markers.IMMERSIVE_FULLSCREEN
    if not (marker.present_in(text) or declares_method(text, IMMERSIVE_HELPER) or _IMMERSIVE_CALL.search(text)):
        return edit

    decl = find_method(text, IMMERSIVE_HELPER, locator)
    marker_match = marker.pattern().search(text)
    if decl is not None and decl.has_body:
        start = decl.start
        if marker_match and marker_match.start() < decl.start:
            start = line_start(text, marker_match.start())
        end = decl.close_brace + 1
        if text[end:end + 2] == "\r\n":
            end += 2
        elif text[end:end + 1] == "\n":
            end += 1
        text = _drop_blank_seam(text[:start] + text[end:], start)
        edit.applied.append(f"removed {IMMERSIVE_HELPER}")
    elif decl is not None:
        edit.warnings.append(f"{IMMERSIVE_HELPER} declared without a bounded body; definition left in place")
    elif marker_match:
        # marker comment without a definition behind it
        start = line_start(text, marker_match.start())
        nl = text.find("\n", marker_match.end())
        end = len(text) if nl < 0 else nl + 1
        text = text[:start] + text[end:]
        edit.applied.append(f"removed {marker.text} comment")

    text, calls = _IMMERSIVE_CALL.subn("", text)
    if calls:
        edit.applied.append(f"removed {calls} {IMMERSIVE_HELPER} call(s)")
    edit.text = text
    return edit


# ---------------------------------------------------------------------------
# Class body
# ---------------------------------------------------------------------------

def ensure_class_body(text: str, cls: ClassDeclaration) -> str:
    """Give ``class X : Y()`` (no body) an empty ``{ }`` body."""
    if cls.has_body:
        return text
    line = text[cls.start:cls.line_end].rstrip()
    return text[:cls.start] + line + " {\n" + cls.indent + "}" + text[cls.line_end:]


def _splice_point(text: str, cls: ClassDeclaration, locator: BlockBoundaryLocator) -> tuple[Optional[int], Optional[str]]:
    if cls.close_brace is not None:
        return cls.close_brace, None
    fallback = locator.last_top_level_close(text)
    if fallback is None:
        return None, None
    return fallback, f"class {cls.name} body could not be bounded; inserting before the last top-level '}}'"


def splice_members(text: str, close_brace: int, blocks: list[str], closing_indent: str) -> str:
    """Insert *blocks* (already indented) right before the ``}`` at *close_brace*."""
    if not blocks:
        return text
    joined = "\n\n".join(b.rstrip("\n") for b in blocks) + "\n"
    start = line_start(text, close_brace)
    if text[start:close_brace].strip():
        return text[:close_brace] + "\n" + joined + closing_indent + text[close_brace:]
    prev_start = line_start(text, max(start - 1, 0))
    prefix = "" if start == 0 or not text[prev_start:start].strip() else "\n"
    return text[:start] + prefix + joined + text[start:]


# ---------------------------------------------------------------------------
# Hooks
# ---------------------------------------------------------------------------

def insert_hook(
    text: str,
    spec: synth.BridgeSpec,
    unit: str,
    locator: BlockBoundaryLocator,
    cls: Optional[ClassDeclaration] = None,
) -> tuple[str, str]:
    """Put *spec*'s dispatch snippet first in its callback.

    Only direct members of *cls* count as the callback when it is given.
    Returns ``(text, outcome)`` where outcome is ``"hook"``, ``"override"``
    (the callback does not exist) or ``"unbounded"`` (the callback exists but
    has no usable body).
    """
    decl = find_method(text, spec.callback, locator, scope=cls)
    if decl is None:
        if declares_method(text, spec.callback, scope=cls, locator=locator):
            return text, "unbounded"
        return text, "override"
    if not decl.has_body or len(decl.param_names) < spec.hook_params:
        return text, "unbounded"

    open_brace = decl.open_brace
    nl = text.find("\n", open_brace)
    rest = text[open_brace + 1:] if nl < 0 else text[open_brace + 1:nl]
    if rest.strip() or nl < 0:
        indent = decl.indent + unit
        snippet = spec.hook_snippet(indent, decl.param_names)
        return text[:open_brace + 1] + "\n" + snippet + indent + text[open_brace + 1:].lstrip(" \t"), "hook"

    indent = body_indent(text, decl, unit)
    snippet = spec.hook_snippet(indent, decl.param_names)
    return text[:nl + 1] + snippet + text[nl + 1:], "hook"


# ---------------------------------------------------------------------------
# Keep-alive
# ---------------------------------------------------------------------------

def _has_keep(text: str, start: int, decl_line_end: int) -> bool:
    if any(k in text[start:decl_line_end] for k in _KEEP_NAMES):
        return True
    pos = start
    while pos > 0:
        prev = line_start(text, pos - 1)
        line = text[prev:pos].strip()
        if not line.startswith("@"):
            return False
        if any(line.startswith(k) for k in _KEEP_NAMES):
            return True
        pos = prev
    return False


def ensure_keep_annotations(text: str, names: list[str], locator: BlockBoundaryLocator) -> tuple[str, list[str]]:
    """Prefix each declared entry point in *names* with the keep annotation."""
    added: list[str] = []
    for name in names:
        decl = find_method(text, name, locator)
        if decl is None:
            continue
        nl = text.find("\n", decl.start)
        line_end = len(text) if nl < 0 else nl
        if _has_keep(text, decl.start, line_end):
            continue
        text = text[:decl.start] + f"{decl.indent}{synth.KEEP_ANNOTATION}\n" + text[decl.start:]
        added.append(f"keep:{name}")
    return text, added


# ---------------------------------------------------------------------------
# Whole-file transformation
# ---------------------------------------------------------------------------

def _core_block(spec: synth.BridgeSpec, indent: str, unit: str, config: PatchConfig) -> str:
    codes = REQUEST_CODES.get(spec.core.capability)
    if codes is not None:
        return spec.core_block(indent, unit, config.limits, codes)
    return spec.core_block(indent, unit, config.limits)


def patch_activity_text(
    text: str,
    config: PatchConfig,
    locator: Optional[BlockBoundaryLocator] = None,
) -> ActivityEdit:
    """Apply every enabled bridge to the activity source *text*.

    Raises :class:`LocatorError` when the activity class is not declared or
    no insertion point exists at all.
    """
    locator = locator or get_locator(config.locator)
    unit = detect_indent_unit(text)

    # synthesized code is LF; a CRLF host is edited as LF and converted back
    crlf = is_crlf(text)
    if crlf:
        text = text.replace("\r\n", "\n")

    edit = remove_retired_immersive(text, locator)
    text = edit.text

    cls = find_class(text, config.activity_class, locator)
    if cls is None:
        raise LocatorError(f"class {config.activity_class} not declared")
    if not cls.has_body:
        text = ensure_class_body(text, cls)
        edit.applied.append("class body")

    member_indent = cls.indent + unit
    batch: list[str] = []
    keep_names: list[str] = []

    for spec in synth.BRIDGES:
        if not config.bridge_enabled(spec.key):
            continue
        keep_names.extend(spec.entry_points)
        has_core = spec.core.present_in(text)
        has_hook = spec.hook.present_in(text)
        if has_core and has_hook:
            continue

        override: Optional[str] = None
        if not has_hook:
            cls = find_class(text, config.activity_class, locator)
            text, outcome = insert_hook(text, spec, unit, locator, cls)
            if outcome == "unbounded":
                msg = f"{spec.callback} is declared but its body could not be located; {spec.key} skipped"
                edit.warnings.append(msg)
                _logger.warning("[activity] %s", msg)
                continue
            if outcome == "hook":
                edit.applied.append(spec.hook.text)
            else:
                override = spec.override_block(member_indent, unit)

        if not has_core:
            batch.append(_core_block(spec, member_indent, unit, config))
            edit.applied.append(spec.core.text)
        if override is not None:
            batch.append(override)
            edit.applied.append(spec.hook.text)

    if batch:
        cls = find_class(text, config.activity_class, locator)
        if cls is None:
            raise LocatorError(f"class {config.activity_class} lost during patching")
        close, warning = _splice_point(text, cls, locator)
        if close is None:
            raise LocatorError(f"no closing brace to insert before in class {config.activity_class}")
        if warning:
            edit.warnings.append(warning)
            _logger.warning("[activity] %s", warning)
        text = splice_members(text, close, batch, cls.indent)

    text, kept = ensure_keep_annotations(text, keep_names, locator)
    edit.applied.extend(kept)
    edit.text = text.replace("\n", "\r\n") if crlf else text
    return edit


class ActivityPatcher(Patcher):
    """Injects the folder picker, microphone permission and speech bridges."""

    mandatory = True

    @property
    def name(self) -> str:
        return "activity"

    def apply(
        self,
        android_root: Path,
        config: PatchConfig,
        *,
        dry_run: bool = False,
        on_log: Optional[Callable[[str], None]] = None,
    ) -> list[PatchResult]:
        sources = find_activity_sources(android_root, config.activity_class)
        if not sources:
            return [self._skipped(f"{config.activity_class}.kt not found under {android_root}", on_log=on_log)]

        locator = get_locator(config.locator)
        results: list[PatchResult] = []
        for path in sources:
            try:
                original = self._read_text(path)
            except OSError as e:
                _logger.error("[activity] read failed: %s: %s", path, e)
                results.append(self._result(PatchStatus.FAILED, path, f"read failed: {e}"))
                continue

            try:
                edit = patch_activity_text(original, config, locator)
            except LocatorError as e:
                msg = f"[activity] {e}: {path}"
                _logger.error(msg)
                self._log(on_log, msg)
                results.append(self._result(PatchStatus.FAILED, path, str(e), logs=[msg]))
                continue

            for warning in edit.warnings:
                self._log(on_log, f"[activity] warning: {warning}")

            if locator.is_balanced(original) and not locator.is_balanced(edit.text):
                msg = f"[activity] result would leave unbalanced braces, not written: {path}"
                _logger.error(msg)
                self._log(on_log, msg)
                results.append(self._result(
                    PatchStatus.FAILED, path, "unbalanced result",
                    applied=edit.applied, warnings=edit.warnings, logs=[msg],
                ))
                continue

            results.append(self._commit(
                path, original, edit.text,
                dry_run=dry_run, applied=edit.applied, warnings=edit.warnings, on_log=on_log,
            ))
        return results
