"""Patcher registry – the fixed order patchers run in."""

from __future__ import annotations

from .activity import ActivityPatcher
from .base import Patcher
from .icons import IconSyncPatcher
from .keep_rules import KeepRulesPatcher
from .manifest import ManifestPatcher
from .settings import SettingsFallbackPatcher
from .signing import SigningPatcher

_PATCHERS: tuple[Patcher, ...] = (
    ManifestPatcher(),
    ActivityPatcher(),
    KeepRulesPatcher(),
    IconSyncPatcher(),
    SigningPatcher(),
    SettingsFallbackPatcher(),
)


def get_patchers() -> list[Patcher]:
    """Return every patcher, in run order."""
    return list(_PATCHERS)


def get_patcher(name: str) -> Patcher:
    for patcher in _PATCHERS:
        if patcher.name == name:
            return patcher
    raise ValueError(f"No patcher registered with name: {name}")


def patcher_names() -> list[str]:
    return [p.name for p in _PATCHERS]
