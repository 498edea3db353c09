"""Static candidate programs for every supported family.

Each table is declared in priority order: when no preference is configured,
the first installed entry wins.
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple

from software_updater.core.errors import UnsupportedEcosystem
from software_updater.core.models import ProgramDescriptor


def _program(
    family: str,
    key: str,
    display_name: str,
    executable: str,
    args: Tuple[str, ...],
    elevated: bool = False,
) -> ProgramDescriptor:
    return ProgramDescriptor(
        family=family,
        key=key,
        display_name=display_name,
        executable_name=executable,
        update_args=args,
        requires_elevation=elevated,
    )


PACMAN = (
    _program("pacman", "pacman", "Pacman", "pacman", ("-Syu",), elevated=True),
)

AUR = (
    _program("aur", "yay", "Yay", "yay", ("-Sua",)),
    _program("aur", "aurutils", "AurUtils", "aur", ("sync", "-u")),
    _program("aur", "pikaur", "Pikaur", "pikaur", ("-Sua",)),
    _program("aur", "paru", "Paru", "paru", ("-Sua",)),
    _program("aur", "pamac", "Pamac", "pamac", ("upgrade", "--aur")),
)

DEB = (
    _program("deb", "apt", "Apt", "apt", ("full-upgrade",), elevated=True),
    _program("deb", "aptitude", "Aptitude", "aptitude", ("safe-upgrade",), elevated=True),
    _program("deb", "apt-get", "Apt-Get", "apt-get", ("dist-upgrade",), elevated=True),
)

RPM = (
    _program("rpm", "dnf", "DNF", "dnf", ("upgrade",), elevated=True),
    _program("rpm", "yum", "Yum", "yum", ("update",), elevated=True),
    _program("rpm", "zypper", "Zypper", "zypper", ("update",), elevated=True),
)

PORTAGE = (
    _program(
        "portage", "emerge", "Portage", "emerge",
        ("--update", "--deep", "--newuse", "@world"), elevated=True,
    ),
)

EOPKG = (
    _program("eopkg", "eopkg", "Eopkg", "eopkg", ("upgrade",), elevated=True),
)

APK = (
    _program("apk", "apk", "Apk", "apk", ("upgrade",), elevated=True),
)

NIX_CHANNEL = (
    _program("nix_channel", "nix-channel", "Nix Channel", "nix-channel", ("--update",)),
)

SNAP = (
    _program("snap", "snap", "Snap", "snap", ("refresh",), elevated=True),
)

FLATPAK = (
    _program("flatpak", "flatpak", "Flatpak", "flatpak", ("update",)),
)

BREW = (
    _program("brew", "brew", "Homebrew", "brew", ("upgrade",)),
)

CHOCO = (
    _program("choco", "choco", "Chocolatey", "choco", ("upgrade", "all"), elevated=True),
)

WINGET = (
    _program("winget", "winget", "Winget", "winget", ("upgrade", "--all")),
)

RUST = (
    _program("rust", "rustup", "Rustup", "rustup", ("update",)),
    # Needs the cargo-update plugin for the install-update subcommand.
    _program("rust", "cargo", "Cargo", "cargo", ("install-update", "-a")),
)

DART = (
    _program("dart", "flutter", "Flutter", "flutter", ("upgrade",)),
)

JS = (
    _program("js", "npm", "npm", "npm", ("update", "-g")),
    _program("js", "yarn", "Yarn", "yarn", ("global", "upgrade")),
)

TABLES: Dict[str, Tuple[ProgramDescriptor, ...]] = {
    "pacman": PACMAN,
    "aur": AUR,
    "deb": DEB,
    "rpm": RPM,
    "portage": PORTAGE,
    "eopkg": EOPKG,
    "apk": APK,
    "nix_channel": NIX_CHANNEL,
    "snap": SNAP,
    "flatpak": FLATPAK,
    "brew": BREW,
    "choco": CHOCO,
    "winget": WINGET,
    "rust": RUST,
    "dart": DART,
    "js": JS,
}

FAMILY_TITLES: Dict[str, str] = {
    "pacman": "Arch",
    "aur": "AUR",
    "deb": "Debian",
    "rpm": "RPM",
    "portage": "Portage",
    "eopkg": "Eopkg",
    "apk": "Alpine",
    "nix_channel": "Nix",
    "snap": "Snap",
    "flatpak": "Flatpak",
    "brew": "Homebrew",
    "choco": "Chocolatey",
    "winget": "Winget",
    "rust": "Rust",
    "dart": "Dart",
    "js": "JavaScript",
}

# Used in "no available ..." messages.
PURPOSES: Dict[str, str] = {
    "pacman": "Arch package manager",
    "aur": "AUR helper",
    "deb": "apt package manager",
    "rpm": "rpm package manager",
    "js": "JavaScript package manager",
    "rust": "Rust toolchain updater",
}

# Families whose programs are independent and may all run in one step.
COMPOSITE_FAMILIES = frozenset({"rust", "js"})


def families() -> list[str]:
    return list(TABLES)


def table(family: str) -> Tuple[ProgramDescriptor, ...]:
    try:
        return TABLES[family]
    except KeyError:
        raise UnsupportedEcosystem(family) from None


def find(family: str, key: str) -> Optional[ProgramDescriptor]:
    for descriptor in TABLES.get(family, ()):
        if descriptor.key == key:
            return descriptor
    return None


def title(family: str) -> str:
    return FAMILY_TITLES.get(family, family)


def purpose(family: str) -> str:
    return PURPOSES.get(family, f"{title(family)} updater")
