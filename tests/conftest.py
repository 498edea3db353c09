import logging
import stat
from pathlib import Path

import pytest


@pytest.fixture
def fake_bin(tmp_path):
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    return bin_dir


@pytest.fixture
def make_program(fake_bin):
    """Write a throwaway shell script into ``fake_bin`` and make it executable."""

    def _make(name: str, body: str = "exit 0") -> Path:
        path = fake_bin / name
        path.write_text(f"#!/bin/sh\n{body}\n", encoding="utf-8")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return _make


@pytest.fixture
def not_root(monkeypatch):
    from software_updater.core import execution

    monkeypatch.setattr(execution, "is_root", lambda: False)
    monkeypatch.setattr(execution, "is_windows", lambda: False)


@pytest.fixture(autouse=True)
def _reset_logging():
    # The CLI installs a root handler bound to the runner's stderr.
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
