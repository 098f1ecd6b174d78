"""Orchestrator – runs every patcher over the generated tree, in order."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from rich.console import Console
from rich.table import Table

from .config import PatchConfig
from .patchers.base import Patcher, PatchResult, PatchStatus
from .patchers.registry import get_patchers, patcher_names

_logger = logging.getLogger("genpatch.orchestrator")

console = Console()

_STATUS_STYLE = {
    PatchStatus.MODIFIED: "[green]modified[/green]",
    PatchStatus.UNCHANGED: "[dim]unchanged[/dim]",
    PatchStatus.SKIPPED: "[yellow]skipped[/yellow]",
    PatchStatus.FAILED: "[red]failed[/red]",
}


@dataclass
class PatchReport:
    """Every result of one run plus the verdict derived from them."""

    android_root: Path
    results: list[PatchResult] = field(default_factory=list)
    root_missing: bool = False
    dry_run: bool = False

    @property
    def mandatory_ok(self) -> bool:
        return any(r.ok for r in self.results if r.patcher in _mandatory_names())

    @property
    def exit_code(self) -> int:
        if self.root_missing:
            return 0
        return 0 if self.mandatory_ok else 1

    @property
    def changed(self) -> list[PatchResult]:
        return [r for r in self.results if r.changed]

    @property
    def warnings(self) -> list[str]:
        return [w for r in self.results for w in r.warnings]

    def by_patcher(self, name: str) -> list[PatchResult]:
        return [r for r in self.results if r.patcher == name]


def _mandatory_names() -> set[str]:
    return {p.name for p in get_patchers() if p.mandatory}


class PatchOrchestrator:
    """Applies the patcher sequence to one project's generated Android tree."""

    def __init__(
        self,
        config: PatchConfig,
        *,
        dry_run: bool = False,
        verbose: bool = True,
        patchers: Optional[list[Patcher]] = None,
        on_log: Optional[Callable[[str], None]] = None,
    ):
        self.config = config
        self.dry_run = dry_run
        self.verbose = verbose
        self.patchers = patchers if patchers is not None else get_patchers()
        self.on_log = on_log

    def _active_patchers(self) -> list[Patcher]:
        skip = set(self.config.skip)
        unknown = sorted(skip - set(patcher_names()))
        if unknown:
            _logger.warning("[orchestrator] unknown patchers in skip list: %s", ", ".join(unknown))
        active: list[Patcher] = []
        for patcher in self.patchers:
            if patcher.name in skip:
                if patcher.mandatory:
                    _logger.warning("[orchestrator] %s cannot be skipped", patcher.name)
                else:
                    _logger.info("[orchestrator] skipping %s (config)", patcher.name)
                    continue
            active.append(patcher)
        return active

    def run(self) -> PatchReport:
        root = self.config.android_path
        report = PatchReport(android_root=root, dry_run=self.dry_run)

        if not root.is_dir():
            report.root_missing = True
            _logger.warning("[orchestrator] generated Android project not found: %s", root)
            if self.verbose:
                console.print(f"[yellow]⚠ Android project not found at {root}, nothing to patch[/yellow]")
            return report

        for patcher in self._active_patchers():
            _logger.debug("[orchestrator] running %s", patcher.name)
            try:
                results = patcher.apply(root, self.config, dry_run=self.dry_run, on_log=self.on_log)
            except Exception as e:
                _logger.exception("[orchestrator] %s raised", patcher.name)
                results = [PatchResult(patcher=patcher.name, status=PatchStatus.FAILED, message=str(e))]
            report.results.extend(results)

        if not report.mandatory_ok:
            _logger.error("[orchestrator] no activity source was patched successfully")
        if self.verbose:
            self.print_summary(report)
        return report

    def print_summary(self, report: PatchReport) -> None:
        title = "genpatch (dry run)" if report.dry_run else "genpatch"
        table = Table(title=f"{title}: {report.android_root}")
        table.add_column("Patcher", style="cyan")
        table.add_column("File", style="blue")
        table.add_column("Status")
        table.add_column("Details")

        for r in report.results:
            if r.path is None:
                shown = "-"
            else:
                try:
                    shown = str(r.path.relative_to(report.android_root))
                except ValueError:
                    shown = str(r.path)
            table.add_row(r.patcher, shown, _STATUS_STYLE[r.status], r.message)

        console.print(table)
        for w in report.warnings:
            console.print(f"  [yellow]⚠[/yellow] {w}")
        if report.exit_code:
            console.print("[red]Activity patch failed[/red]")


def run_patch(config: PatchConfig, *, dry_run: bool = False, verbose: bool = True) -> PatchReport:
    return PatchOrchestrator(config, dry_run=dry_run, verbose=verbose).run()
