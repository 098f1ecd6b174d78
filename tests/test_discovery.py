"""Tests for genpatch.discovery."""

from pathlib import Path

from conftest import make_android_tree
from genpatch.discovery import (
    find_activity_sources,
    find_app_build_file,
    find_keep_rules,
    find_manifests,
    find_settings_file,
)


def test_build_output_is_never_walked(tmp_path: Path) -> None:
    root = make_android_tree(tmp_path)
    stale = root / "app" / "build" / "intermediates" / "AndroidManifest.xml"
    stale.parent.mkdir(parents=True)
    stale.write_text("<manifest />", encoding="utf-8")
    (root / ".gradle").mkdir()
    (root / ".gradle" / "AndroidManifest.xml").write_text("<manifest />", encoding="utf-8")

    manifests = find_manifests(root)
    assert manifests == [root / "app" / "src" / "main" / "AndroidManifest.xml"]


def test_activity_found_under_java_and_kotlin(tmp_path: Path) -> None:
    root = make_android_tree(tmp_path)
    extra = root / "app" / "src" / "main" / "kotlin" / "com" / "other" / "MainActivity.kt"
    extra.parent.mkdir(parents=True)
    extra.write_text("class MainActivity\n", encoding="utf-8")
    found = find_activity_sources(root)
    assert len(found) == 2
    assert found[-1] == extra
    assert find_activity_sources(root, "OtherActivity") == []


def test_build_script_prefers_kts(tmp_path: Path) -> None:
    root = make_android_tree(tmp_path)
    (root / "app" / "build.gradle").write_text("android {}\n", encoding="utf-8")
    script = find_app_build_file(root)
    assert script is not None
    assert script.kind == "kts"

    (root / "app" / "build.gradle.kts").unlink()
    script = find_app_build_file(root)
    assert script is not None
    assert script.kind == "groovy"


def test_missing_files(tmp_path: Path) -> None:
    root = make_android_tree(tmp_path, keep_rules=None, build_gradle=None, settings=None)
    assert find_keep_rules(root) == []
    assert find_app_build_file(root) is None
    assert find_settings_file(root) is None
    assert find_manifests(tmp_path / "absent") == []
