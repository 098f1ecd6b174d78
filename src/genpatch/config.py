"""Configuration models for genpatch."""

import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from .bridge import BridgeLimits

CONFIG_FILENAME = "genpatch.yaml"

DEFAULT_ICON_DIRS = [
    "mipmap-anydpi-v26",
    "mipmap-mdpi",
    "mipmap-hdpi",
    "mipmap-xhdpi",
    "mipmap-xxhdpi",
    "mipmap-xxxhdpi",
    "values",
]

BRIDGE_KEYS = ("folder_picker", "mic_permission", "speech")


@dataclass
class SigningConfig:
    """Release signing: generated script name and the env vars it reads."""
    script_name: str = "genpatch-signing.gradle"
    keystore_path_env: str = "KEYSTORE_PATH"
    keystore_password_env: str = "KEYSTORE_PASSWORD"
    key_alias_env: str = "KEY_ALIAS"
    key_password_env: str = "KEY_PASSWORD"

    @property
    def env_vars(self) -> list[str]:
        return [
            self.keystore_path_env,
            self.keystore_password_env,
            self.key_alias_env,
            self.key_password_env,
        ]

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "SigningConfig":
        data = data or {}
        defaults = cls()
        return cls(
            script_name=data.get("script_name", defaults.script_name),
            keystore_path_env=data.get("keystore_path_env", defaults.keystore_path_env),
            keystore_password_env=data.get("keystore_password_env", defaults.keystore_password_env),
            key_alias_env=data.get("key_alias_env", defaults.key_alias_env),
            key_password_env=data.get("key_password_env", defaults.key_password_env),
        )


@dataclass
class PatchConfig:
    """Everything a patch run needs to know about the project being patched."""
    project_root: Path = field(default_factory=Path.cwd)
    android_root: str = "src-tauri/gen/android"
    icons_source: str = "src-tauri/icons/android"
    icon_dirs: list[str] = field(default_factory=lambda: list(DEFAULT_ICON_DIRS))
    activity_class: str = "MainActivity"
    permissions: list[str] = field(default_factory=lambda: ["android.permission.RECORD_AUDIO"])
    bridges: dict[str, bool] = field(default_factory=lambda: {key: True for key in BRIDGE_KEYS})
    limits: BridgeLimits = field(default_factory=BridgeLimits)
    locator: str = "literal-aware"
    skip: list[str] = field(default_factory=list)
    signing: SigningConfig = field(default_factory=SigningConfig)
    settings_project_name: str = "android"
    tauri_bin: Optional[str] = None

    @property
    def android_path(self) -> Path:
        p = Path(self.android_root)
        return p if p.is_absolute() else self.project_root / p

    @property
    def icons_path(self) -> Path:
        p = Path(self.icons_source)
        return p if p.is_absolute() else self.project_root / p

    def bridge_enabled(self, key: str) -> bool:
        return bool(self.bridges.get(key, False))

    def validate(self) -> list[str]:
        issues = list(self.limits.validate())
        unknown = sorted(set(self.bridges) - set(BRIDGE_KEYS))
        if unknown:
            issues.append(f"Unknown bridges: {', '.join(unknown)}")
        if not self.activity_class.isidentifier():
            issues.append(f"activity_class is not an identifier: {self.activity_class!r}")
        if self.locator not in ("raw", "literal-aware"):
            issues.append(f"locator must be 'raw' or 'literal-aware', got {self.locator!r}")
        return issues

    @classmethod
    def from_dict(cls, data: Optional[dict], project_root: Optional[Path] = None) -> "PatchConfig":
        """Create configuration from dictionary."""
        data = data or {}
        defaults = cls()

        bridges = {key: True for key in BRIDGE_KEYS}
        for key, enabled in (data.get("bridges") or {}).items():
            bridges[str(key)] = bool(enabled)

        limits_data = data.get("limits") or {}
        limits = BridgeLimits(**{
            k: int(v) for k, v in limits_data.items() if k in BridgeLimits.__dataclass_fields__
        })

        return cls(
            project_root=Path(project_root) if project_root else Path.cwd(),
            android_root=data.get("android_root", defaults.android_root),
            icons_source=data.get("icons_source", defaults.icons_source),
            icon_dirs=list(data.get("icon_dirs", defaults.icon_dirs)),
            activity_class=data.get("activity_class", defaults.activity_class),
            permissions=list(data.get("permissions", defaults.permissions)),
            bridges=bridges,
            limits=limits,
            locator=str(data.get("locator", defaults.locator)).strip().lower(),
            skip=[str(s) for s in data.get("skip", [])],
            signing=SigningConfig.from_dict(data.get("signing")),
            settings_project_name=data.get("settings_project_name", defaults.settings_project_name),
            tauri_bin=data.get("tauri_bin"),
        )

    @classmethod
    def from_yaml(cls, path: Path, project_root: Optional[Path] = None) -> "PatchConfig":
        """Load configuration from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data, project_root=project_root or path.parent)

    def apply_env(self, env: Optional[dict[str, str]] = None) -> "PatchConfig":
        src = env if env is not None else os.environ
        android_root = (src.get("GENPATCH_ANDROID_ROOT") or "").strip()
        if android_root:
            self.android_root = android_root
        locator = (src.get("GENPATCH_LOCATOR") or "").strip().lower()
        if locator:
            self.locator = locator
        return self

    def to_dict(self) -> dict:
        """Convert configuration to dictionary (project_root excluded)."""
        return {
            "android_root": self.android_root,
            "icons_source": self.icons_source,
            "icon_dirs": list(self.icon_dirs),
            "activity_class": self.activity_class,
            "permissions": list(self.permissions),
            "bridges": dict(self.bridges),
            "limits": asdict(self.limits),
            "locator": self.locator,
            "skip": list(self.skip),
            "signing": asdict(self.signing),
            "settings_project_name": self.settings_project_name,
            "tauri_bin": self.tauri_bin,
        }

    def to_yaml(self, path: Path) -> None:
        """Save configuration to YAML file."""
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)


def load_config(
    project_root: str | Path = ".",
    path: Optional[str | Path] = None,
    env: Optional[dict[str, str]] = None,
) -> PatchConfig:
    """Load config for *project_root*: explicit file, else ``genpatch.yaml``, else defaults."""
    root = Path(project_root).resolve()
    if path is not None:
        cfg_path = Path(path)
        if not cfg_path.exists():
            raise FileNotFoundError(f"Config file not found: {cfg_path}")
        config = PatchConfig.from_yaml(cfg_path, project_root=root)
    elif (root / CONFIG_FILENAME).exists():
        config = PatchConfig.from_yaml(root / CONFIG_FILENAME, project_root=root)
    else:
        config = PatchConfig(project_root=root)
    return config.apply_env(env)
