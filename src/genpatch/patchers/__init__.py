"""Patchers for the files of a generated Android project tree."""

from .base import LocatorError, PatchError, Patcher, PatchResult, PatchStatus
from .activity import ActivityPatcher
from .icons import IconSyncPatcher
from .keep_rules import KeepRulesPatcher
from .manifest import ManifestPatcher
from .settings import SettingsFallbackPatcher
from .signing import SigningPatcher, SigningStatus, evaluate_signing
from .registry import get_patcher, get_patchers, patcher_names

__all__ = [
    "LocatorError",
    "PatchError",
    "Patcher",
    "PatchResult",
    "PatchStatus",
    "ActivityPatcher",
    "IconSyncPatcher",
    "KeepRulesPatcher",
    "ManifestPatcher",
    "SettingsFallbackPatcher",
    "SigningPatcher",
    "SigningStatus",
    "evaluate_signing",
    "get_patcher",
    "get_patchers",
    "patcher_names",
]
