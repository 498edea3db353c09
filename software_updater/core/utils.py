from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path


def is_windows() -> bool:
    return os.name == "nt"


def is_root() -> bool:
    geteuid = getattr(os, "geteuid", None)
    if geteuid is None:
        return False
    return geteuid() == 0


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def write_json(path: Path, data: dict) -> None:
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def get_config_dir() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME", "").strip()
    if xdg:
        return Path(xdg) / "software_updater"
    if is_windows() and os.environ.get("APPDATA"):
        return Path(os.environ["APPDATA"]) / "software_updater"
    return Path(os.path.expanduser("~/.config/software_updater"))
