"""Locate the files each patcher targets inside the generated Android tree.

Every lookup tolerates zero or many matches.  Build output and IDE folders
are never walked: they hold copies of the same files that Gradle regenerates.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

IGNORED_DIRS = {"build", ".gradle", ".idea", ".cxx", "node_modules"}


def walk_files(root: Path, filename: str) -> Iterator[Path]:
    """Yield files named *filename* under *root*, in a stable order."""
    if not root.is_dir():
        return
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in IGNORED_DIRS)
        if filename in filenames:
            yield Path(dirpath) / filename


def find_manifests(android_root: Path) -> list[Path]:
    return list(walk_files(android_root, "AndroidManifest.xml"))


def find_activity_sources(android_root: Path, class_name: str = "MainActivity") -> list[Path]:
    main = android_root / "app" / "src" / "main"
    found: list[Path] = []
    for sub in ("java", "kotlin"):
        found.extend(walk_files(main / sub, f"{class_name}.kt"))
    return found


def find_keep_rules(android_root: Path) -> list[Path]:
    return list(walk_files(android_root / "app", "proguard-rules.pro"))


@dataclass
class BuildScript:
    path: Path
    kind: str  # kts | groovy


def find_app_build_file(android_root: Path) -> Optional[BuildScript]:
    app = android_root / "app"
    kts = app / "build.gradle.kts"
    groovy = app / "build.gradle"
    if kts.exists():
        return BuildScript(kts, "kts")
    if groovy.exists():
        return BuildScript(groovy, "groovy")
    return None


def find_settings_file(android_root: Path) -> Optional[Path]:
    for name in ("settings.gradle", "settings.gradle.kts"):
        p = android_root / name
        if p.exists():
            return p
    return None
