"""Tests for the genpatch click CLI."""

import io
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner
from rich.console import Console

from conftest import activity_path, make_android_tree
from genpatch import cli as cli_mod
from genpatch import orchestrator
from genpatch.cli import cli
from genpatch.upstream import GeneratorError


@pytest.fixture
def out(monkeypatch: pytest.MonkeyPatch) -> io.StringIO:
    buf = io.StringIO()
    console = Console(file=buf, width=200)
    monkeypatch.setattr(cli_mod, "console", console)
    monkeypatch.setattr(orchestrator, "console", console)
    return buf


def test_version() -> None:
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "genpatch" in result.output


def test_markers_lists_registry(out: io.StringIO) -> None:
    result = CliRunner().invoke(cli, ["markers"])
    assert result.exit_code == 0
    text = out.getvalue()
    assert "genpatch:folder-picker-v1" in text
    assert "genpatch:android-signing-gradle-v2" in text
    assert "retired" in text


def test_patch_succeeds(tmp_path: Path, out: io.StringIO, no_signing_env: None) -> None:
    make_android_tree(tmp_path)
    result = CliRunner().invoke(cli, ["patch", str(tmp_path)])
    assert result.exit_code == 0
    assert "activity" in out.getvalue()


def test_patch_missing_tree_exits_zero(tmp_path: Path, out: io.StringIO) -> None:
    result = CliRunner().invoke(cli, ["patch", str(tmp_path)])
    assert result.exit_code == 0


def test_patch_missing_activity_exits_one(tmp_path: Path, out: io.StringIO, no_signing_env: None) -> None:
    root = make_android_tree(tmp_path)
    activity_path(root).unlink()
    result = CliRunner().invoke(cli, ["patch", str(tmp_path)])
    assert result.exit_code == 1


def test_patch_dry_run_leaves_tree(tmp_path: Path, out: io.StringIO, no_signing_env: None) -> None:
    root = make_android_tree(tmp_path)
    before = activity_path(root).read_text(encoding="utf-8")
    result = CliRunner().invoke(cli, ["patch", str(tmp_path), "--dry-run"])
    assert result.exit_code == 0
    assert activity_path(root).read_text(encoding="utf-8") == before


def test_patch_invalid_config(tmp_path: Path, out: io.StringIO) -> None:
    cfg = tmp_path / "genpatch.yaml"
    cfg.write_text("locator: ast\n", encoding="utf-8")
    result = CliRunner().invoke(cli, ["patch", str(tmp_path), "-c", str(cfg)])
    assert result.exit_code == 1
    assert "Invalid configuration" in out.getvalue()


def test_status_shows_markers(tmp_path: Path, out: io.StringIO, no_signing_env: None) -> None:
    make_android_tree(tmp_path)
    CliRunner().invoke(cli, ["patch", str(tmp_path)])
    out.truncate(0)
    out.seek(0)

    result = CliRunner().invoke(cli, ["status", str(tmp_path)])
    assert result.exit_code == 0
    text = out.getvalue()
    assert "genpatch:permissions-v1" in text
    assert "Release signing inactive" in text


def test_status_missing_tree(tmp_path: Path, out: io.StringIO) -> None:
    result = CliRunner().invoke(cli, ["status", str(tmp_path)])
    assert result.exit_code == 0
    assert "Android project not found" in out.getvalue()


def test_tauri_forwards_args(tmp_path: Path, out: io.StringIO) -> None:
    with patch("genpatch.cli.wrap_tauri", return_value=3) as wrap:
        result = CliRunner().invoke(cli, ["tauri", "-p", str(tmp_path), "android", "build", "--apk"])
    assert result.exit_code == 3
    args, config = wrap.call_args[0]
    assert list(args) == ["android", "build", "--apk"]
    assert config.project_root == tmp_path.resolve()


def test_tauri_generator_error_exit_code(tmp_path: Path, out: io.StringIO) -> None:
    with patch("genpatch.cli.wrap_tauri", side_effect=GeneratorError("init failed", 9)):
        result = CliRunner().invoke(cli, ["tauri", "-p", str(tmp_path), "android", "dev"])
    assert result.exit_code == 9
    assert "init failed" in out.getvalue()


def test_ensure_init_noop_outside_android(tmp_path: Path, out: io.StringIO, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("npm_config_argv", raising=False)
    result = CliRunner().invoke(cli, ["ensure-init", str(tmp_path)])
    assert result.exit_code == 0
