from __future__ import annotations

import logging
import shlex
import subprocess
import sys
import threading
from typing import IO, List, Optional, Tuple

from software_updater.core.errors import SpawnFailure
from software_updater.core.models import (
    ExecutionResult,
    ExitStatus,
    SelectionResult,
)
from software_updater.core.probe import resolve
from software_updater.core.utils import is_root, is_windows, utc_now

logger = logging.getLogger(__name__)

# Tried in order; the first one on the search path wraps elevated programs.
ELEVATION_LAUNCHERS = ("sudo", "doas", "pkexec")

READER_GRACE = 2.0
# Time a timed-out child gets between SIGTERM and SIGKILL.
TERMINATE_GRACE = 5.0


def elevation_prefix(search_path: Optional[str] = None) -> List[str]:
    """Return the argv prefix that runs a program with elevated privileges."""
    if is_root():
        return []
    if is_windows():
        logger.warning("Privilege elevation is not supported on Windows, running unelevated")
        return []
    for launcher in ELEVATION_LAUNCHERS:
        path = resolve(launcher, search_path)
        if path is not None:
            return [str(path)]
    raise SpawnFailure(
        f"No privilege elevation launcher available (tried {', '.join(ELEVATION_LAUNCHERS)})"
    )


def build_command(
    selection: SelectionResult,
    search_path: Optional[str] = None,
) -> Tuple[List[str], bool]:
    """Build the child argv and report whether it goes through an elevation launcher."""
    descriptor = selection.descriptor
    command = [str(selection.path), *descriptor.update_args]
    if not descriptor.requires_elevation:
        return command, False
    prefix = elevation_prefix(search_path)
    return prefix + command, bool(prefix)


def _pump(stream: IO[bytes], chunks: List[bytes], echo: bool, to_stderr: bool) -> None:
    target = sys.stderr if to_stderr else sys.stdout
    sink = getattr(target, "buffer", None)
    try:
        for line in iter(stream.readline, b""):
            chunks.append(line)
            if not echo:
                continue
            if sink is not None:
                sink.write(line)
                sink.flush()
            else:
                target.write(line.decode("utf-8", errors="replace"))
                target.flush()
    finally:
        stream.close()


def _stop(process: subprocess.Popen, name: str) -> int:
    # Elevation launchers relay SIGTERM to the elevated command but cannot
    # relay SIGKILL, so the polite signal goes first.
    process.terminate()
    try:
        return process.wait(timeout=TERMINATE_GRACE)
    except subprocess.TimeoutExpired:
        logger.warning(f"{name} ignored SIGTERM, killing it")
        process.kill()
        return process.wait()


def execute(
    selection: SelectionResult,
    *,
    capture: bool = False,
    timeout: Optional[float] = None,
    echo: bool = True,
    search_path: Optional[str] = None,
    to_stderr: bool = False,
) -> ExecutionResult:
    """Run the selected program and block until it exits.

    Without ``capture`` the child inherits the terminal, so elevation prompts
    and progress output reach the user directly. With ``capture`` stdout is
    collected (and echoed unless ``echo`` is false). ``to_stderr`` sends the
    child's output, streamed or echoed, to stderr instead of stdout.

    On timeout the child gets SIGTERM, then SIGKILL after
    :data:`TERMINATE_GRACE` seconds.

    A non-zero exit is part of the result. :class:`SpawnFailure` means the
    process never started.
    """
    descriptor = selection.descriptor
    command, elevated = build_command(selection, search_path)

    if capture:
        stdout = subprocess.PIPE
    elif to_stderr:
        stdout = sys.__stderr__.fileno()
    else:
        stdout = None

    logger.info(f"Updating with {descriptor.display_name}: {shlex.join(command)}")
    started = utc_now()
    try:
        process = subprocess.Popen(command, stdout=stdout)
    except OSError as exc:
        raise SpawnFailure(
            f"Could not start {descriptor.display_name} ({command[0]}): {exc}"
        ) from exc

    chunks: List[bytes] = []
    reader = None
    if capture:
        reader = threading.Thread(
            target=_pump, args=(process.stdout, chunks, echo, to_stderr), daemon=True
        )
        reader.start()

    timed_out = False
    try:
        returncode = process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        timed_out = True
        logger.error(f"{descriptor.display_name} timed out after {timeout}s, stopping it")
        returncode = _stop(process, descriptor.display_name)

    if reader is not None:
        # Orphaned grandchildren may keep the pipe open after a kill; the
        # reader closes it once they exit.
        reader.join(timeout=READER_GRACE if timed_out else None)

    signal = None
    if timed_out:
        status = ExitStatus.TIMEOUT
    elif returncode == 0:
        status = ExitStatus.SUCCESS
    elif returncode < 0:
        status = ExitStatus.SIGNALED
        signal = -returncode
    else:
        status = ExitStatus.FAILURE

    result = ExecutionResult(
        program=descriptor.key,
        command=command,
        returncode=returncode,
        status=status,
        signal=signal,
        elevated=elevated,
        output=b"".join(chunks) if capture else None,
        started_at=started,
        finished_at=utc_now(),
    )

    logger.debug(f"Exit Status: {returncode}")
    if result.succeeded:
        logger.info(f"{descriptor.display_name} finished")
    elif status == ExitStatus.SIGNALED:
        logger.warning(f"{descriptor.display_name} was terminated by signal {signal}")
    elif status == ExitStatus.FAILURE:
        logger.warning(f"{descriptor.display_name} exited with status {returncode}")
    return result

