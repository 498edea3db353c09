from __future__ import annotations

import platform
from pathlib import Path
from typing import Dict, Iterable, Optional

OS_RELEASE = Path("/etc/os-release")

UNKNOWN = "unknown"


def read_os_release(path: Path = OS_RELEASE) -> Dict[str, str]:
    """Parse os-release KEY=value lines; an absent file yields an empty dict."""
    if not path.exists():
        return {}
    data = {}
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        data[key.strip()] = value.strip().strip('"').strip("'")
    return data


def detect_ecosystem(
    os_release_path: Path = OS_RELEASE,
    system: Optional[str] = None,
    known: Optional[Iterable[str]] = None,
) -> str:
    """Identify the running OS as an ecosystem id such as ``arch`` or ``windows``.

    On Linux the os-release ``ID`` is used when it is in ``known``; otherwise
    the first known ``ID_LIKE`` entry, so derivatives map onto their parent.
    """
    system = system or platform.system()
    if system == "Windows":
        return "windows"
    if system == "Darwin":
        return "macos"

    info = read_os_release(os_release_path)
    distro_id = info.get("ID", "").lower()
    if not distro_id:
        return UNKNOWN
    if known is None:
        return distro_id

    known = set(known)
    if distro_id in known:
        return distro_id
    for like in info.get("ID_LIKE", "").lower().split():
        if like in known:
            return like
    return distro_id
