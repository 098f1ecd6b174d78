"""Base patcher interface shared by every target-file kind."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from ..config import PatchConfig

_logger = logging.getLogger("genpatch.patchers")


def is_crlf(text: str) -> bool:
    """True when every line break in *text* is ``\\r\\n``."""
    return "\r\n" in text and text.count("\r\n") == text.count("\n")


def match_newlines(original: str, content: str) -> str:
    """Give *content* the line breaks of a CRLF *original*; otherwise unchanged."""
    if not is_crlf(original) or is_crlf(content):
        return content
    return content.replace("\r\n", "\n").replace("\n", "\r\n")


class PatchError(Exception):
    """Raised when a patch operation cannot proceed."""


class LocatorError(PatchError):
    """A structural anchor the patch depends on was not found."""


class PatchStatus(str, Enum):
    UNCHANGED = "unchanged"
    MODIFIED = "modified"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class PatchResult:
    """Outcome of one patcher on one file (or on the tree, when no file applies)."""

    patcher: str
    status: PatchStatus
    path: Optional[Path] = None
    message: str = ""
    applied: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    logs: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status in (PatchStatus.UNCHANGED, PatchStatus.MODIFIED)

    @property
    def changed(self) -> bool:
        return self.status == PatchStatus.MODIFIED


class Patcher(ABC):
    """One narrow, single-purpose transformation of the generated tree."""

    #: A failing mandatory patcher makes the whole run fail.
    mandatory: bool = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the patcher identifier used in config and reports."""

    @abstractmethod
    def apply(
        self,
        android_root: Path,
        config: PatchConfig,
        *,
        dry_run: bool = False,
        on_log: Optional[Callable[[str], None]] = None,
    ) -> list[PatchResult]:
        """Patch every matching file under *android_root*; one result per file."""

    # ------------------------------------------------------------------
    # Helpers shared by all patchers
    # ------------------------------------------------------------------

    @staticmethod
    def _log(on_log: Optional[Callable[[str], None]], msg: str) -> None:
        if on_log:
            try:
                on_log(msg)
            except Exception:
                _logger.debug("[patcher] on_log callback raised", exc_info=True)

    @staticmethod
    def _read_text(path: Path) -> str:
        # line breaks as stored, so CRLF files can be written back as CRLF
        with open(path, encoding="utf-8", newline="") as f:
            return f.read()

    @staticmethod
    def _write_text(path: Path, content: str, *, dry_run: bool = False) -> None:
        if dry_run:
            _logger.debug("[patcher] dry-run, not writing %s", path)
            return
        path.write_text(content, encoding="utf-8", newline="")

    def _result(self, status: PatchStatus, path: Optional[Path] = None, message: str = "", **kw) -> PatchResult:
        return PatchResult(patcher=self.name, status=status, path=path, message=message, **kw)

    def _skipped(
        self,
        message: str,
        path: Optional[Path] = None,
        on_log: Optional[Callable[[str], None]] = None,
    ) -> PatchResult:
        text = f"[{self.name}] {message}"
        _logger.warning(text)
        self._log(on_log, text)
        return self._result(PatchStatus.SKIPPED, path, message, warnings=[message], logs=[text])

    def _commit(
        self,
        path: Path,
        original: str,
        content: str,
        *,
        dry_run: bool,
        applied: Optional[list[str]] = None,
        warnings: Optional[list[str]] = None,
        logs: Optional[list[str]] = None,
        on_log: Optional[Callable[[str], None]] = None,
    ) -> PatchResult:
        """Write *content* when it differs from *original*; write errors become FAILED."""
        logs = list(logs or [])
        content = match_newlines(original, content)
        if content == original:
            msg = f"[{self.name}] already patched: {path}"
            logs.append(msg)
            self._log(on_log, msg)
            _logger.info(msg)
            return self._result(
                PatchStatus.UNCHANGED, path, "already patched",
                applied=list(applied or []), warnings=list(warnings or []), logs=logs,
            )
        try:
            self._write_text(path, content, dry_run=dry_run)
        except OSError as e:
            msg = f"[{self.name}] write failed: {path}: {e}"
            logs.append(msg)
            self._log(on_log, msg)
            _logger.error(msg)
            return self._result(
                PatchStatus.FAILED, path, f"write failed: {e}",
                applied=list(applied or []), warnings=list(warnings or []), logs=logs,
            )
        verb = "would patch" if dry_run else "patched"
        summary = ", ".join(applied or []) or "content updated"
        msg = f"[{self.name}] {verb} {path}: {summary}"
        logs.append(msg)
        self._log(on_log, msg)
        _logger.info(msg)
        return self._result(
            PatchStatus.MODIFIED, path, summary,
            applied=list(applied or []), warnings=list(warnings or []), logs=logs,
        )
