from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field, ValidationError

from software_updater.core.errors import ConfigError
from software_updater.core.router import FamilyPlan, ecosystem_families, is_supported
from software_updater.core.selection import PreferencePolicy
from software_updater.core.utils import ensure_dir, get_config_dir, write_json

logger = logging.getLogger(__name__)

CONFIG_ENV = "SOFTWARE_UPDATER_CONFIG"
CONFIG_FILENAME = "config.json"


class ArchConfig(BaseModel):
    official: bool = True
    aur: bool = True
    preferred_program_official: Optional[str] = "pacman"
    preferred_program_aur: Optional[str] = "paru"


class DebConfig(BaseModel):
    preferred_program: Optional[str] = "apt"


class RpmConfig(BaseModel):
    preferred_program: Optional[str] = "dnf"


class LinuxConfig(BaseModel):
    arch: Optional[ArchConfig] = Field(default_factory=ArchConfig)
    deb: Optional[DebConfig] = Field(default_factory=DebConfig)
    rpm: Optional[RpmConfig] = Field(default_factory=RpmConfig)
    portage: bool = True
    eopkg: bool = True
    nix_channel: bool = True
    apk: bool = True
    snap: bool = True
    flatpak: bool = True
    brew: bool = True


class WindowsConfig(BaseModel):
    choco: bool = True
    winget: bool = True


class MacOsConfig(BaseModel):
    brew: bool = True


class OsConfig(BaseModel):
    linux: Optional[LinuxConfig] = Field(default_factory=LinuxConfig)
    windows: Optional[WindowsConfig] = Field(default_factory=WindowsConfig)
    macos: Optional[MacOsConfig] = Field(default_factory=MacOsConfig)


class RustConfig(BaseModel):
    rustup: bool = True
    cargo: bool = True


class JSConfig(BaseModel):
    npm: bool = True
    yarn: bool = True


class LanguageConfig(BaseModel):
    rust: Optional[RustConfig] = Field(default_factory=RustConfig)
    dart: bool = True
    js: Optional[JSConfig] = Field(default_factory=JSConfig)


class Settings(BaseModel):
    preference_policy: PreferencePolicy = PreferencePolicy.FALLBACK
    capture_output: bool = False
    timeout: Optional[float] = Field(default=None, gt=0)
    jobs: int = Field(default=1, ge=1)


class Config(BaseModel):
    os: Optional[OsConfig] = Field(default_factory=OsConfig)
    language: Optional[LanguageConfig] = Field(default_factory=LanguageConfig)
    settings: Settings = Field(default_factory=Settings)


def config_path(path: Optional[Path] = None) -> Path:
    if path is not None:
        return Path(path)
    override = os.environ.get(CONFIG_ENV, "").strip()
    if override:
        return Path(os.path.expanduser(override))
    return get_config_dir() / CONFIG_FILENAME


def load_config(path: Optional[Path] = None) -> Config:
    """Read the configuration file; a missing file means all defaults."""
    path = config_path(path)
    if not path.exists():
        logger.debug(f"No configuration at {path}, using defaults")
        return Config()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Could not read configuration {path}: {exc}") from exc
    try:
        return Config.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration {path}:\n{exc}") from exc


def create_default_file(path: Optional[Path] = None, force: bool = False) -> Path:
    path = config_path(path)
    if path.exists() and not force:
        logger.info(f"Configuration already exists at {path}")
        return path
    ensure_dir(path.parent)
    write_json(path, Config().model_dump(mode="json"))
    logger.info(f"Wrote default configuration to {path}")
    return path


def _linux_plans(linux: Optional[LinuxConfig], ecosystem_id: str) -> List[FamilyPlan]:
    plans = []
    for family in ecosystem_families(ecosystem_id):
        if linux is None:
            plans.append(FamilyPlan(family=family, enabled=False))
        elif family in ("pacman", "aur"):
            arch = linux.arch
            if family == "pacman":
                plans.append(FamilyPlan(
                    family=family,
                    enabled=bool(arch and arch.official),
                    preferred=arch.preferred_program_official if arch else None,
                ))
            else:
                plans.append(FamilyPlan(
                    family=family,
                    enabled=bool(arch and arch.aur),
                    preferred=arch.preferred_program_aur if arch else None,
                ))
        elif family in ("deb", "rpm"):
            section = getattr(linux, family)
            plans.append(FamilyPlan(
                family=family,
                enabled=section is not None,
                preferred=section.preferred_program if section else None,
            ))
        else:
            plans.append(FamilyPlan(family=family, enabled=getattr(linux, family)))

    # Distribution-independent package managers are only run where installed.
    for family in ("snap", "flatpak", "brew"):
        plans.append(FamilyPlan(
            family=family,
            enabled=bool(linux and getattr(linux, family)),
            optional=True,
        ))
    return plans


def _os_plans(os_config: Optional[OsConfig], ecosystem_id: str) -> List[FamilyPlan]:
    if not is_supported(ecosystem_id):
        # Routed to an "unsupported" report rather than silently dropped.
        return [FamilyPlan(family=ecosystem_id, unsupported=True)]

    if ecosystem_id == "windows":
        windows = os_config.windows if os_config else None
        return [
            FamilyPlan(family=family, enabled=bool(windows and getattr(windows, family)), optional=True)
            for family in ecosystem_families(ecosystem_id)
        ]
    if ecosystem_id == "macos":
        macos = os_config.macos if os_config else None
        return [FamilyPlan(family="brew", enabled=bool(macos and macos.brew))]
    return _linux_plans(os_config.linux if os_config else None, ecosystem_id)


def _language_plans(language: Optional[LanguageConfig]) -> List[FamilyPlan]:
    rust = language.rust if language else None
    js = language.js if language else None
    rust_requested = tuple(k for k in ("rustup", "cargo") if rust and getattr(rust, k))
    js_requested = tuple(k for k in ("npm", "yarn") if js and getattr(js, k))
    return [
        FamilyPlan(family="rust", enabled=bool(rust_requested), requested=rust_requested, optional=True),
        FamilyPlan(family="dart", enabled=bool(language and language.dart), optional=True),
        FamilyPlan(family="js", enabled=bool(js_requested), requested=js_requested, optional=True),
    ]


def build_plans(
    config: Config,
    ecosystem_id: str,
    only: Optional[Iterable[str]] = None,
) -> List[FamilyPlan]:
    """Turn the configuration tree into ordered per-family plans: OS first, then languages."""
    plans = _os_plans(config.os, ecosystem_id) + _language_plans(config.language)
    if only:
        wanted = set(only)
        plans = [plan for plan in plans if plan.family in wanted]
    return plans
