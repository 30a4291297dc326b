"""Cross-platform process group termination.

Both the shell abort signal and the shell timeout end up here:
- Unix: SIGTERM to the process group, short grace period, then SIGKILL
- Windows: CTRL_BREAK_EVENT, grace period, taskkill /T /F, then kill
"""

import asyncio
import logging
import os
import signal
import subprocess
import sys
from asyncio.subprocess import Process
from typing import Any

logger = logging.getLogger(__name__)

# Grace period between the polite and the forced kill
KILL_GRACE_PERIOD: float = 0.2

if sys.platform == "win32":
    WINDOWS_CREATIONFLAGS = (
        subprocess.CREATE_NEW_PROCESS_GROUP |
        subprocess.CREATE_NO_WINDOW
    )
else:
    WINDOWS_CREATIONFLAGS = 0


def process_group_kwargs() -> dict[str, Any]:
    """Spawn arguments that place the child in its own process group."""
    if sys.platform == "win32":
        return {"creationflags": WINDOWS_CREATIONFLAGS}
    return {"start_new_session": True}


def signal_name(returncode: int | None) -> str | None:
    """Name of the signal that ended a process, from its asyncio returncode.

    asyncio reports death-by-signal as a negative returncode.
    """
    if returncode is None or returncode >= 0:
        return None
    try:
        return signal.Signals(-returncode).name
    except ValueError:
        return str(-returncode)


async def terminate_process_tree(
    process: Process,
    grace_period: float = KILL_GRACE_PERIOD,
) -> None:
    """Terminate a process and all of its children.

    Args:
        process: The asyncio subprocess to terminate.
        grace_period: Seconds to wait after the graceful signal before
            escalating to a forced kill.
    """
    if process.returncode is not None:
        return

    pid = process.pid
    if pid is None:
        return

    if sys.platform == "win32":
        await _terminate_windows(process, pid, grace_period)
    else:
        await _terminate_unix(process, pid, grace_period)


def _signal_group(process: Process, pid: int, sig: signal.Signals) -> None:
    """Send sig to the process group, falling back to the single process."""
    try:
        pgid = os.getpgid(pid)
        os.killpg(pgid, sig)
        logger.debug("Sent %s to process group %d", sig.name, pgid)
    except (ProcessLookupError, PermissionError, OSError):
        try:
            process.send_signal(sig)
        except ProcessLookupError:
            pass


async def _wait(process: Process, timeout: float) -> bool:
    """Wait up to timeout seconds; return True if the process exited."""
    try:
        await asyncio.wait_for(process.wait(), timeout=timeout)
        return True
    except TimeoutError:
        return False


async def _terminate_unix(process: Process, pid: int, grace_period: float) -> None:
    _signal_group(process, pid, signal.SIGTERM)
    if await _wait(process, grace_period):
        return

    _signal_group(process, pid, signal.SIGKILL)
    await process.wait()


async def _terminate_windows(process: Process, pid: int, grace_period: float) -> None:
    try:
        os.kill(pid, signal.CTRL_BREAK_EVENT)  # type: ignore[attr-defined]
        logger.debug("Sent CTRL_BREAK_EVENT to process %d", pid)
    except (ProcessLookupError, OSError, AttributeError):
        pass

    if await _wait(process, grace_period):
        return

    try:
        taskkill = await asyncio.create_subprocess_exec(
            "taskkill", "/T", "/F", "/PID", str(pid),
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
            creationflags=WINDOWS_CREATIONFLAGS,
        )
        await asyncio.wait_for(taskkill.wait(), timeout=max(grace_period, 1.0))
        logger.debug("taskkill /T /F completed for PID %d", pid)
    except (FileNotFoundError, TimeoutError, OSError):
        pass

    if await _wait(process, 0.5):
        return

    try:
        process.kill()
    except ProcessLookupError:
        pass
    await process.wait()
