"""Tests for genpatch.patchers.keep_rules."""

from pathlib import Path

from conftest import KEEP_RULES, make_android_tree
from genpatch import markers
from genpatch.config import PatchConfig
from genpatch.patchers.base import PatchStatus, is_crlf, match_newlines
from genpatch.patchers.keep_rules import KeepRulesPatcher, patch_keep_rules_text

ALL = ["folder_picker", "mic_permission", "speech"]


def test_one_block_per_bridge() -> None:
    text, applied = patch_keep_rules_text(KEEP_RULES, ALL)
    assert applied == [
        markers.KEEP_FOLDER_PICKER.text,
        markers.KEEP_MIC_PERMISSION.text,
        markers.KEEP_SPEECH.text,
    ]
    assert text.startswith(KEEP_RULES + "\n# genpatch:keep-folder-picker-v1\n")
    assert text.count("-keepclassmembers class * extends android.app.Activity {") == 3
    assert "public java.lang.String genpatchSpeechDrain(int);" in text


def test_markers_checked_independently() -> None:
    partial, _ = patch_keep_rules_text(KEEP_RULES, ["mic_permission"])
    text, applied = patch_keep_rules_text(partial, ALL)
    assert applied == [markers.KEEP_FOLDER_PICKER.text, markers.KEEP_SPEECH.text]
    assert text.count(markers.KEEP_MIC_PERMISSION.text) == 1


def test_idempotent() -> None:
    once, _ = patch_keep_rules_text(KEEP_RULES, ALL)
    twice, applied = patch_keep_rules_text(once, ALL)
    assert twice == once
    assert applied == []


def test_file_without_trailing_newline() -> None:
    text, _ = patch_keep_rules_text("-dontwarn foo", ["speech"])
    assert text.startswith("-dontwarn foo\n\n# genpatch:keep-speech-recognition-v1\n")


def test_empty_file() -> None:
    text, _ = patch_keep_rules_text("", ["folder_picker"])
    assert text.startswith("# genpatch:keep-folder-picker-v1\n")


def test_patcher(tmp_path: Path) -> None:
    root = make_android_tree(tmp_path)
    cfg = PatchConfig(project_root=tmp_path, bridges={"folder_picker": True, "mic_permission": False, "speech": True})
    results = KeepRulesPatcher().apply(root, cfg)
    assert [r.status for r in results] == [PatchStatus.MODIFIED]
    content = (root / "app" / "proguard-rules.pro").read_text(encoding="utf-8")
    assert markers.KEEP_FOLDER_PICKER.present_in(content)
    assert not markers.KEEP_MIC_PERMISSION.present_in(content)
    assert [r.status for r in KeepRulesPatcher().apply(root, cfg)] == [PatchStatus.UNCHANGED]


def test_patcher_missing_file_is_skipped(tmp_path: Path) -> None:
    root = make_android_tree(tmp_path, keep_rules=None)
    results = KeepRulesPatcher().apply(root, PatchConfig(project_root=tmp_path))
    assert [r.status for r in results] == [PatchStatus.SKIPPED]


def test_patcher_preserves_crlf(tmp_path: Path) -> None:
    root = make_android_tree(tmp_path)
    rules = root / "app" / "proguard-rules.pro"
    rules.write_bytes(KEEP_RULES.replace("\n", "\r\n").encode("utf-8"))
    cfg = PatchConfig(project_root=tmp_path)
    assert [r.status for r in KeepRulesPatcher().apply(root, cfg)] == [PatchStatus.MODIFIED]
    data = rules.read_bytes()
    assert data.startswith(KEEP_RULES.replace("\n", "\r\n").encode("utf-8"))
    assert data.count(b"\n") == data.count(b"\r\n")
    assert [r.status for r in KeepRulesPatcher().apply(root, cfg)] == [PatchStatus.UNCHANGED]


def test_match_newlines() -> None:
    assert match_newlines("a\r\nb\r\n", "a\nb\nc\n") == "a\r\nb\r\nc\r\n"
    assert match_newlines("a\r\nb\r\n", "a\r\nb\nc\n") == "a\r\nb\r\nc\r\n"
    assert match_newlines("a\nb\n", "a\nb\nc\n") == "a\nb\nc\n"
    assert match_newlines("a\r\nb\n", "x\n") == "x\n"
    assert not is_crlf("")
