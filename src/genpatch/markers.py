"""Capability markers – the textual sentinels that record "already patched".

A marker is embedded in the patched file as a comment.  Its presence is the
only idempotence signal the engine trusts: there is no side ledger, the
generated tree is the single source of truth.

Marker text is ``genpatch:<capability>-v<revision>``.  A new revision of a
capability's generated code must get a new revision number; a marker string
is never reused for different content.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional

PREFIX = "genpatch"


@dataclass(frozen=True)
class CapabilityMarker:
    """One injectable capability at one revision."""

    capability: str
    revision: int = 1
    retired: bool = False
    description: str = ""

    @property
    def text(self) -> str:
        return f"{PREFIX}:{self.capability}-v{self.revision}"

    def comment(self, style: str = "//") -> str:
        if style == "xml":
            return f"<!-- {self.text} -->"
        return f"{style} {self.text}"

    def pattern(self) -> re.Pattern[str]:
        # "-v1" must not match inside "-v10" or "-v1-hook"
        return re.compile(re.escape(self.text) + r"(?![\w-])")

    def present_in(self, text: str) -> bool:
        return self.pattern().search(text or "") is not None

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class RequestCodeRange:
    """Integer range owned by one callback-keyed capability."""

    base: int
    span: int

    @property
    def end(self) -> int:
        return self.base + self.span

    def contains(self, code: int) -> bool:
        return self.base <= code < self.end

    def overlaps(self, other: "RequestCodeRange") -> bool:
        return self.base < other.end and other.base < self.end


# ---------------------------------------------------------------------------
# Activity bridges (core block + hook are independent markers)
# ---------------------------------------------------------------------------

FOLDER_PICKER = CapabilityMarker("folder-picker", 1, description="folder selection bridge")
FOLDER_PICKER_HOOK = CapabilityMarker("folder-picker-hook", 1, description="onActivityResult dispatch")
MIC_PERMISSION = CapabilityMarker("mic-permission", 1, description="RECORD_AUDIO grant bridge")
MIC_PERMISSION_HOOK = CapabilityMarker(
    "mic-permission-hook", 1, description="onRequestPermissionsResult dispatch",
)
SPEECH = CapabilityMarker("speech-recognition", 1, description="speech recognition bridge + event queue")
SPEECH_HOOK = CapabilityMarker("speech-recognition-hook", 1, description="onDestroy release")

# Keep rules
KEEP_FOLDER_PICKER = CapabilityMarker("keep-folder-picker", 1, description="R8 keep rule")
KEEP_MIC_PERMISSION = CapabilityMarker("keep-mic-permission", 1, description="R8 keep rule")
KEEP_SPEECH = CapabilityMarker("keep-speech-recognition", 1, description="R8 keep rule")

# Manifest / Gradle
PERMISSIONS = CapabilityMarker("permissions", 1, description="<uses-permission> block")
SPEECH_QUERIES = CapabilityMarker("speech-queries", 1, description="<queries> RecognitionService")
SIGNING_APPLY = CapabilityMarker("android-signing", 1, description="apply line in app build script")
SIGNING_SCRIPT = CapabilityMarker("android-signing-gradle", 2, description="signing Gradle script")
SETTINGS_FALLBACK = CapabilityMarker("settings-fallback", 1, description="tauri.settings.gradle fallback")

# Retired: removed from patched files on every run
IMMERSIVE_FULLSCREEN = CapabilityMarker(
    "immersive-fullscreen", 2, retired=True, description="immersive fullscreen (retired)",
)

REGISTRY: tuple[CapabilityMarker, ...] = (
    FOLDER_PICKER,
    FOLDER_PICKER_HOOK,
    MIC_PERMISSION,
    MIC_PERMISSION_HOOK,
    SPEECH,
    SPEECH_HOOK,
    KEEP_FOLDER_PICKER,
    KEEP_MIC_PERMISSION,
    KEEP_SPEECH,
    PERMISSIONS,
    SPEECH_QUERIES,
    SIGNING_APPLY,
    SIGNING_SCRIPT,
    SETTINGS_FALLBACK,
    IMMERSIVE_FULLSCREEN,
)

REQUEST_CODES: dict[str, RequestCodeRange] = {
    FOLDER_PICKER.capability: RequestCodeRange(41000, 500),
    MIC_PERMISSION.capability: RequestCodeRange(42000, 500),
}


def active_markers() -> list[CapabilityMarker]:
    return [m for m in REGISTRY if not m.retired]


def find_duplicates(markers: Iterable[CapabilityMarker] = REGISTRY) -> list[str]:
    """Return marker texts that occur more than once, or that shadow one another.

    Two markers collide when one's text matches inside the other's
    (e.g. a prefix relation that the boundary check would not catch).
    """
    items = list(markers)
    dupes: list[str] = []
    seen: set[str] = set()
    for m in items:
        if m.text in seen and m.text not in dupes:
            dupes.append(m.text)
        seen.add(m.text)
    for a in items:
        for b in items:
            if a is b or a.text == b.text:
                continue
            if a.present_in(b.text) and a.text not in dupes:
                dupes.append(a.text)
    return dupes


def find_overlapping_ranges(ranges: Optional[dict[str, RequestCodeRange]] = None) -> list[tuple[str, str]]:
    items = list((ranges if ranges is not None else REQUEST_CODES).items())
    clashes: list[tuple[str, str]] = []
    for i, (name_a, a) in enumerate(items):
        for name_b, b in items[i + 1:]:
            if a.overlaps(b):
                clashes.append((name_a, name_b))
    return clashes


def markers_present(text: str, markers: Iterable[CapabilityMarker] = REGISTRY) -> list[CapabilityMarker]:
    return [m for m in markers if m.present_in(text)]


def get_marker(text: str) -> CapabilityMarker:
    for m in REGISTRY:
        if m.text == text:
            return m
    raise KeyError(f"Unknown marker: {text}")
