"""CLI for genpatch – patch a regenerated Tauri Android project tree."""

import sys
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from . import __version__, markers
from .config import PatchConfig, load_config
from .discovery import (
    find_activity_sources,
    find_app_build_file,
    find_keep_rules,
    find_manifests,
    find_settings_file,
)
from .log_config import setup_logging
from .orchestrator import PatchOrchestrator
from .patchers.settings import TAURI_SETTINGS
from .patchers.signing import evaluate_signing
from .upstream import GeneratorError, ensure_init_for_npm, wrap_tauri

console = Console()


def _load(project: str, config_path: Optional[str]) -> PatchConfig:
    root = Path(project).resolve()
    env_file = root / ".env"
    if env_file.exists():
        load_dotenv(env_file, override=False)
    return load_config(root, config_path)


def _check(config: PatchConfig) -> None:
    issues = config.validate()
    if issues:
        console.print("[red]Invalid configuration:[/red]")
        for issue in issues:
            console.print(f"  • {issue}")
        sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="genpatch")
def cli():
    """genpatch – idempotent patches for generated Android project trees."""
    pass


@cli.command()
@click.argument("project", default=".", type=click.Path(file_okay=False))
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, dir_okay=False), help="Config file")
@click.option("--dry-run", "-n", is_flag=True, help="Compute every change without writing")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
def patch(project: str, config_path: Optional[str], dry_run: bool, verbose: bool):
    """Apply every patch to PROJECT's generated Android tree."""
    setup_logging(verbose=verbose)
    try:
        config = _load(project, config_path)
        _check(config)
        report = PatchOrchestrator(config, dry_run=dry_run, verbose=True).run()
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)
    sys.exit(report.exit_code)


@cli.command()
@click.argument("project", default=".", type=click.Path(file_okay=False))
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, dir_okay=False), help="Config file")
def status(project: str, config_path: Optional[str]):
    """Show which markers each target file carries, and the signing state."""
    setup_logging()
    try:
        config = _load(project, config_path)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    root = config.android_path
    if not root.is_dir():
        console.print(f"[yellow]⚠ Android project not found at {root}[/yellow]")
        return

    files: list[Path] = []
    files.extend(find_manifests(root))
    files.extend(find_activity_sources(root, config.activity_class))
    files.extend(find_keep_rules(root))
    build = find_app_build_file(root)
    if build is not None:
        files.append(build.path)
    for extra in (root / config.signing.script_name, root / TAURI_SETTINGS):
        if extra.exists():
            files.append(extra)

    table = Table(title=f"Markers: {root}")
    table.add_column("File", style="cyan")
    table.add_column("Markers", style="green")
    for path in files:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            table.add_row(str(path.relative_to(root)), f"[red]{e}[/red]")
            continue
        present = markers.markers_present(text)
        shown = ", ".join(
            f"[red]{m.text} (retired)[/red]" if m.retired else m.text for m in present
        )
        table.add_row(str(path.relative_to(root)), shown or "[dim]-[/dim]")
    console.print(table)

    if find_settings_file(root) is None:
        console.print("[yellow]⚠ settings.gradle not found[/yellow]")

    signing = evaluate_signing(base_dir=root / "app", signing=config.signing)
    if signing.active:
        console.print(f"[green]✓ Release signing active[/green] ({signing.keystore})")
    else:
        console.print(f"[yellow]Release signing inactive:[/yellow] {signing.reason}")


@cli.command("markers")
def list_markers():
    """List every capability marker."""
    table = Table(title="Capability markers")
    table.add_column("Marker", style="cyan")
    table.add_column("Description")
    table.add_column("State")
    for m in markers.REGISTRY:
        table.add_row(m.text, m.description, "[red]retired[/red]" if m.retired else "[green]active[/green]")
    console.print(table)


@cli.command("ensure-init")
@click.argument("project", default=".", type=click.Path(file_okay=False))
def ensure_init(project: str):
    """npm lifecycle hook: run `tauri android init` when an Android build lacks the tree."""
    setup_logging()
    try:
        config = _load(project, None)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)
    sys.exit(ensure_init_for_npm(config))


@cli.command(context_settings=dict(ignore_unknown_options=True, allow_interspersed_args=False))
@click.option("--project", "-p", default=".", type=click.Path(file_okay=False), help="Project root")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
def tauri(project: str, args: tuple[str, ...]):
    """Run the tauri CLI, generating and patching first for `android` commands."""
    setup_logging()
    try:
        config = _load(project, None)
        rc = wrap_tauri(args, config)
    except GeneratorError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(e.returncode)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)
    sys.exit(rc)


def main(argv=None):
    """Main entry point."""
    cli(argv)


if __name__ == "__main__":
    main()
