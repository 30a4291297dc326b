"""Shell command execution with streaming output, abort and timeout.

Two strategies produce the same ExecutionResult:

- pty: ``bash -c`` attached to a pseudo-terminal (Unix only), so programs
  behave as they would interactively. stdout and stderr arrive interleaved.
- child_process: ``bash -c`` (``powershell -Command`` on Windows) with
  separate pipes; stderr is appended after stdout.

Output is streamed to an optional callback as DataEvent chunks. The first
NUL byte flags the output as binary: a single BinaryDetectedEvent follows,
then only BinaryProgressEvent with the running byte count.

Abort (the shared CancellationToken) and timeout both go through
terminate_process_tree. Once either fires, no further output events are
emitted.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import os
import sys
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from alfred.core.errors import ShellExecutionError
from alfred.core.process import (
    KILL_GRACE_PERIOD,
    process_group_kwargs,
    signal_name,
    terminate_process_tree,
)

if TYPE_CHECKING:
    from alfred.config.schema import ShellConfig
    from alfred.core.cancel import CancellationToken

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 4096

# Seconds to wait for output to drain after the process tree was killed
DRAIN_TIMEOUT = 1.0

SHELL_ENV_OVERRIDES = {
    "TERM": "xterm-256color",
    "PAGER": "cat",
    "GIT_PAGER": "cat",
}


# --- Output events ---


@dataclass(frozen=True)
class DataEvent:
    """A chunk of decoded text output."""

    chunk: str


@dataclass(frozen=True)
class BinaryDetectedEvent:
    """Output was identified as binary; emitted once."""


@dataclass(frozen=True)
class BinaryProgressEvent:
    """Running byte count once output is binary."""

    bytes_received: int


ShellOutputEvent = DataEvent | BinaryDetectedEvent | BinaryProgressEvent
OutputHandler = Callable[[ShellOutputEvent], None]


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one shell command.

    Attributes:
        output: Combined text output, or a byte-count summary for binary output.
        exit_code: Process exit code (None if killed by a signal).
        signal: Name of the terminating signal, if any.
        error: Set if reading output failed.
        aborted: True if the command was cancelled or timed out.
        pid: Process id.
        execution_method: "pty" or "child_process".
        binary_detected: True if the output contained a NUL byte.
        timed_out: True if the timeout (not the user) ended the command.
        bytes_received: Total raw bytes read.
    """

    output: str
    exit_code: int | None
    signal: str | None
    error: str | None
    aborted: bool
    pid: int | None
    execution_method: str
    binary_detected: bool = False
    timed_out: bool = False
    bytes_received: int = 0


@dataclass(frozen=True)
class ExecutionHandle:
    """A running command: its pid and a task resolving to the result."""

    pid: int | None
    result: asyncio.Task[ExecutionResult]


class _OutputAccumulator:
    """Collects raw output, detects binary data and emits events."""

    def __init__(self, on_output: OutputHandler | None) -> None:
        self._on_output = on_output
        self._chunks: list[bytes] = []
        self._stderr: list[bytes] = []
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self.bytes_received = 0
        self.binary = False
        self.stopped = False

    def feed(self, data: bytes) -> None:
        if self.stopped or not data:
            return
        self.bytes_received += len(data)

        if not self.binary and b"\x00" in data:
            self.binary = True
            self._emit(BinaryDetectedEvent())

        if self.binary:
            self._emit(BinaryProgressEvent(self.bytes_received))
            return

        self._chunks.append(data)
        text = self._decoder.decode(data)
        if text:
            self._emit(DataEvent(text.replace("\r\n", "\n")))

    def append_stderr(self, data: bytes) -> None:
        """Stderr of the pipe strategy: not streamed, appended after stdout."""
        if self.stopped or not data:
            return
        self.bytes_received += len(data)

        if not self.binary and b"\x00" in data:
            self.binary = True
            self._emit(BinaryDetectedEvent())

        if self.binary:
            self._emit(BinaryProgressEvent(self.bytes_received))
            return

        self._stderr.append(data)

    def stop(self) -> None:
        """Silence further events (after abort or timeout)."""
        self.stopped = True

    @property
    def text(self) -> str:
        if self.binary:
            return f"[Binary output: {self.bytes_received} bytes]"
        out = b"".join(self._chunks).decode("utf-8", errors="replace")
        err = b"".join(self._stderr).decode("utf-8", errors="replace")
        if err:
            separator = "" if not out or out.endswith("\n") else "\n"
            out = f"{out}{separator}{err}"
        return out.replace("\r\n", "\n")

    def _emit(self, event: ShellOutputEvent) -> None:
        if self._on_output is None:
            return
        try:
            self._on_output(event)
        except Exception:
            logger.exception("Shell output handler failed")


def pty_supported() -> bool:
    return sys.platform != "win32"


def build_shell_env() -> dict[str, str]:
    env = dict(os.environ)
    env.update(SHELL_ENV_OVERRIDES)
    return env


def shell_argv(command: str) -> list[str]:
    if sys.platform == "win32":
        return ["powershell.exe", "-NoProfile", "-Command", command]
    return ["bash", "-c", command]


class ShellExecutionService:
    """Runs shell commands for the bash tool.

    Stateless apart from its defaults; one instance can run any number of
    commands concurrently.
    """

    def __init__(self, config: ShellConfig | None = None) -> None:
        self._config = config

    async def execute(
        self,
        command: str,
        cwd: str | Path,
        on_output: OutputHandler | None = None,
        config: ShellConfig | None = None,
        cancel_token: CancellationToken | None = None,
        timeout: float | None = None,
    ) -> ExecutionHandle:
        """Start command and return a handle to it.

        Args:
            command: Shell command line.
            cwd: Working directory.
            on_output: Receives output events as they arrive.
            config: Shell settings (pty preference, kill grace period).
            cancel_token: Cancelling it aborts the command.
            timeout: Seconds before the command is aborted (None = no limit).

        Returns:
            ExecutionHandle whose result task resolves when the command ends.

        Raises:
            ShellExecutionError: If the process cannot be spawned.
        """
        effective = config or self._config
        use_pty = effective.use_pty if effective is not None else True
        grace = effective.kill_grace_period if effective is not None else KILL_GRACE_PERIOD

        accumulator = _OutputAccumulator(on_output)
        if use_pty and pty_supported():
            process, drained, cleanup = await self._spawn_pty(command, cwd, accumulator)
            method = "pty"
        else:
            process, drained, cleanup = await self._spawn_pipes(command, cwd, accumulator)
            method = "child_process"

        logger.debug("Started %s (pid %s) via %s", command, process.pid, method)
        task = asyncio.create_task(
            self._supervise(
                process, drained, cleanup, accumulator, method,
                cancel_token, timeout, grace,
            )
        )
        return ExecutionHandle(pid=process.pid, result=task)

    async def run(
        self,
        command: str,
        cwd: str | Path,
        on_output: OutputHandler | None = None,
        config: ShellConfig | None = None,
        cancel_token: CancellationToken | None = None,
        timeout: float | None = None,
    ) -> ExecutionResult:
        """Start command and wait for its result."""
        handle = await self.execute(command, cwd, on_output, config, cancel_token, timeout)
        return await handle.result

    async def _spawn_pty(
        self,
        command: str,
        cwd: str | Path,
        accumulator: _OutputAccumulator,
    ) -> tuple[asyncio.subprocess.Process, Awaitable[object], Callable[[], None]]:
        import pty

        master_fd, slave_fd = pty.openpty()
        try:
            process = await asyncio.create_subprocess_exec(
                *shell_argv(command),
                stdin=slave_fd,
                stdout=slave_fd,
                stderr=slave_fd,
                cwd=str(cwd),
                env=build_shell_env(),
                **process_group_kwargs(),
            )
        except OSError as e:
            os.close(master_fd)
            raise ShellExecutionError(f"Failed to start shell: {e}") from e
        finally:
            os.close(slave_fd)

        loop = asyncio.get_running_loop()
        eof: asyncio.Future[None] = loop.create_future()

        def on_readable() -> None:
            try:
                data = os.read(master_fd, READ_CHUNK_SIZE)
            except OSError:
                # EIO once every holder of the slave side has exited
                data = b""
            if not data:
                loop.remove_reader(master_fd)
                if not eof.done():
                    eof.set_result(None)
                return
            accumulator.feed(data)

        loop.add_reader(master_fd, on_readable)

        def cleanup() -> None:
            loop.remove_reader(master_fd)
            try:
                os.close(master_fd)
            except OSError:
                pass

        return process, asyncio.gather(process.wait(), eof), cleanup

    async def _spawn_pipes(
        self,
        command: str,
        cwd: str | Path,
        accumulator: _OutputAccumulator,
    ) -> tuple[asyncio.subprocess.Process, Awaitable[object], Callable[[], None]]:
        try:
            process = await asyncio.create_subprocess_exec(
                *shell_argv(command),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(cwd),
                env=build_shell_env(),
                **process_group_kwargs(),
            )
        except OSError as e:
            raise ShellExecutionError(f"Failed to start shell: {e}") from e

        stderr_chunks: list[bytes] = []

        async def read_stdout() -> None:
            assert process.stdout is not None
            while chunk := await process.stdout.read(READ_CHUNK_SIZE):
                accumulator.feed(chunk)

        async def read_stderr() -> None:
            assert process.stderr is not None
            while chunk := await process.stderr.read(READ_CHUNK_SIZE):
                stderr_chunks.append(chunk)

        async def drain() -> None:
            await asyncio.gather(read_stdout(), read_stderr(), process.wait())
            accumulator.append_stderr(b"".join(stderr_chunks))

        return process, drain(), lambda: None

    async def _supervise(
        self,
        process: asyncio.subprocess.Process,
        drained: Awaitable[object],
        cleanup: Callable[[], None],
        accumulator: _OutputAccumulator,
        method: str,
        cancel_token: CancellationToken | None,
        timeout: float | None,
        grace_period: float,
    ) -> ExecutionResult:
        drain_task = asyncio.ensure_future(drained)
        cancel_wait: asyncio.Future[None] | None = None
        waiters: set[asyncio.Future] = {drain_task}
        if cancel_token is not None:
            cancel_wait = asyncio.ensure_future(cancel_token.wait())
            waiters.add(cancel_wait)

        aborted = False
        timed_out = False
        error: str | None = None
        try:
            done, _ = await asyncio.wait(
                waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
            if drain_task not in done:
                aborted = True
                timed_out = cancel_wait is None or cancel_wait not in done
                accumulator.stop()
                logger.info(
                    "Terminating pid %s (%s)",
                    process.pid,
                    "timeout" if timed_out else "cancelled",
                )
                await terminate_process_tree(process, grace_period)
                try:
                    await asyncio.wait_for(asyncio.shield(drain_task), timeout=DRAIN_TIMEOUT)
                except TimeoutError:
                    drain_task.cancel()
            elif drain_task.exception() is not None:
                error = str(drain_task.exception())
                logger.warning("Reading output of pid %s failed: %s", process.pid, error)
        finally:
            if cancel_wait is not None:
                cancel_wait.cancel()
            cleanup()

        returncode = process.returncode
        return ExecutionResult(
            output=accumulator.text,
            exit_code=returncode if returncode is not None and returncode >= 0 else None,
            signal=signal_name(returncode),
            error=error,
            aborted=aborted,
            pid=process.pid,
            execution_method=method,
            binary_detected=accumulator.binary,
            timed_out=timed_out,
            bytes_received=accumulator.bytes_received,
        )
