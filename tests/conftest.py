from __future__ import annotations

import sys
from pathlib import Path

import pytest
from dotenv import load_dotenv

_PROJECT_ROOT = Path(__file__).resolve().parents[1]
_SRC = (_PROJECT_ROOT / "src").resolve()
if str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))

load_dotenv(_PROJECT_ROOT / ".env", override=False)

from genpatch.config import PatchConfig  # noqa: E402

SIGNING_VARS = ("KEYSTORE_PATH", "KEYSTORE_PASSWORD", "KEY_ALIAS", "KEY_PASSWORD")


MANIFEST = """<?xml version="1.0" encoding="utf-8"?>
<manifest xmlns:android="http://schemas.android.com/apk/res/android">
    <uses-permission android:name="android.permission.INTERNET" />
    <application android:label="demo">
        <activity android:name=".MainActivity" android:exported="true" />
    </application>
</manifest>
"""

ACTIVITY_ONE_LINE = """package com.example.demo

class MainActivity : TauriActivity()
"""

ACTIVITY_WITH_BODY = """package com.example.demo

import android.os.Bundle

class MainActivity : TauriActivity() {
  override fun onCreate(savedInstanceState: Bundle?) {
    super.onCreate(savedInstanceState)
  }
}
"""

KEEP_RULES = """# Add project specific ProGuard rules here.
-keep class com.example.demo.** { *; }
"""

BUILD_GRADLE_KTS = """plugins {
    id("com.android.application")
    id("org.jetbrains.kotlin.android")
}

android {
    namespace = "com.example.demo"
}
"""

SETTINGS_GRADLE = """include ':app'
apply from: 'tauri.settings.gradle'
"""


def make_android_tree(
    project: Path,
    *,
    activity: str = ACTIVITY_ONE_LINE,
    manifest: str = MANIFEST,
    keep_rules: str | None = KEEP_RULES,
    build_gradle: str | None = BUILD_GRADLE_KTS,
    settings: str | None = SETTINGS_GRADLE,
) -> Path:
    """Lay out a minimal ``src-tauri/gen/android`` tree; return its root."""
    root = project / "src-tauri" / "gen" / "android"
    main = root / "app" / "src" / "main"
    pkg = main / "java" / "com" / "example" / "demo"
    pkg.mkdir(parents=True)
    (main / "res" / "values").mkdir(parents=True)
    (main / "AndroidManifest.xml").write_text(manifest, encoding="utf-8")
    (pkg / "MainActivity.kt").write_text(activity, encoding="utf-8")
    if keep_rules is not None:
        (root / "app" / "proguard-rules.pro").write_text(keep_rules, encoding="utf-8")
    if build_gradle is not None:
        (root / "app" / "build.gradle.kts").write_text(build_gradle, encoding="utf-8")
    if settings is not None:
        (root / "settings.gradle").write_text(settings, encoding="utf-8")
    return root


def activity_path(root: Path) -> Path:
    return root / "app" / "src" / "main" / "java" / "com" / "example" / "demo" / "MainActivity.kt"


@pytest.fixture
def project(tmp_path: Path) -> Path:
    make_android_tree(tmp_path)
    return tmp_path


@pytest.fixture
def config(project: Path) -> PatchConfig:
    return PatchConfig(project_root=project)


@pytest.fixture
def no_signing_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in SIGNING_VARS:
        monkeypatch.delenv(name, raising=False)
