"""Package manager invocations for the upgrade workflow.

Each call spawns one child process and waits for it. The child's stderr is
passed through to ours as it arrives; its stdout is discarded.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import sys
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from yup.classifier import PackageRequest
from yup.common.logging_utils import Timer, extra_context, is_debug_enabled
from yup.constants import Constants
from yup.errors import PackageManagerError

logger = logging.getLogger(__name__)

_READ_CHUNK = 4096
_TERMINATE_TIMEOUT = 5.0  # seconds


@dataclass
class CommandResult:
    """Outcome of one package manager invocation."""

    args: List[str] = field(default_factory=list)
    returncode: int = 0
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class _IndentedWriter:
    """Write child output to our stderr, indenting every line."""

    def __init__(self, indent: str):
        self._indent = indent
        self._at_line_start = True

    def write(self, text: str) -> None:
        out = []
        for char in text:
            if self._at_line_start and char != "\n":
                out.append(self._indent)
            out.append(char)
            self._at_line_start = char == "\n"
        sys.stderr.write("".join(out))
        sys.stderr.flush()


class PackageManagerRunner:
    """Runs ``remove`` and ``add`` subcommands of a package manager.

    Args:
        command: The package manager command, e.g. ``["yarn"]``.
        cwd: Working directory for the child process (the project directory).
    """

    def __init__(self, command: Optional[Sequence[str]] = None, cwd: Optional[str] = None):
        self._command = list(command or Constants.DEFAULT_MANAGER)
        self._cwd = cwd
        self._proc: Optional[asyncio.subprocess.Process] = None

    @property
    def command(self) -> List[str]:
        return list(self._command)

    async def stop(self) -> None:
        """Terminate the running child, if any.

        Used when the awaiting task was torn down without being cancelled.
        """
        if self._proc is not None:
            await self._terminate(self._proc)

    async def remove(self, requests: Sequence[PackageRequest]) -> CommandResult:
        """Remove ``requests`` from the manifest. No-op for an empty sequence."""
        if not requests:
            return CommandResult()
        return await self._run(Constants.REMOVE_SUBCOMMAND, [], (r.name for r in requests))

    async def upgrade(
        self, requests: Sequence[PackageRequest], flags: Iterable[str] = ()
    ) -> CommandResult:
        """Add ``requests`` back at their declared version ranges.

        Args:
            requests: Packages to add as ``name@version``.
            flags: Extra arguments placed before the packages (e.g. ``--dev``).
        """
        if not requests:
            return CommandResult()
        return await self._run(Constants.ADD_SUBCOMMAND, list(flags), (r.spec for r in requests))

    async def _run(self, subcommand: str, flags: List[str], packages: Iterable[str]) -> CommandResult:
        args = self._command + [subcommand] + flags + list(packages)
        logger.info("Running: %s", " ".join(args))

        spawn = asyncio.ensure_future(
            asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
                cwd=self._cwd,
            )
        )
        try:
            proc = await asyncio.shield(spawn)
        except asyncio.CancelledError:
            # The child may already be forked; wait for its handle to stop it.
            await self._reap_spawn(spawn)
            raise
        except OSError as e:
            raise PackageManagerError(f"Could not start {args[0]}: {e}") from e

        self._proc = proc
        with Timer() as t:
            try:
                stderr = await self._pump_stderr(proc)
                returncode = await proc.wait()
            except asyncio.CancelledError:
                await self._terminate(proc)
                raise
        self._proc = None

        if is_debug_enabled(logger):
            logger.debug(
                "Package manager finished",
                extra=extra_context(
                    event="subprocess_exit",
                    component="runner",
                    action=subcommand,
                    returncode=returncode,
                    duration_ms=t.duration_ms(),
                ),
            )
        if returncode != 0:
            logger.error("Child exited with code %d", returncode)
        return CommandResult(args=args, returncode=returncode, stderr=stderr)

    @staticmethod
    async def _pump_stderr(proc: asyncio.subprocess.Process) -> str:
        writer = _IndentedWriter(Constants.CHILD_STDERR_INDENT)
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        collected: List[str] = []
        assert proc.stderr is not None
        while True:
            chunk = await proc.stderr.read(_READ_CHUNK)
            text = decoder.decode(chunk, final=not chunk)
            if text:
                collected.append(text)
                writer.write(text)
            if not chunk:
                break
        return "".join(collected)

    @classmethod
    async def _reap_spawn(cls, spawn: asyncio.Future) -> None:
        try:
            proc = await spawn
        except OSError:
            return
        await cls._terminate(proc)

    @staticmethod
    async def _terminate(proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is not None:
            return
        logger.info("Stopping package manager (pid %s)", proc.pid)
        try:
            proc.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(proc.wait(), timeout=_TERMINATE_TIMEOUT)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
