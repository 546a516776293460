"""Backup-guarded upgrade workflow.

Reads the manifest, classifies the requested names, backs up the manifest and
lockfile, removes and re-adds the packages through the package manager, then
either discards the backups or restores them.

State flow::

    IDLE -> READING -> CLASSIFYING -> BACKING_UP -> REMOVING -> UPGRADING
         -> COMMITTING | ROLLING_BACK -> TERMINATED

An interrupt (SIGINT/SIGTERM) received from BACKING_UP onwards forces a
rollback and a zero exit code. A failed rollback leaves the backups on disk
and always exits non-zero.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from yup.classifier import PackageRequest, classify
from yup.common.logging_utils import extra_context, is_debug_enabled
from yup.config import UpgradeConfig
from yup.constants import Constants, ExitCodes
from yup.errors import (
    BackupError,
    ManifestReadError,
    PackageManagerError,
    RestoreError,
    UsageError,
)
from yup.manifest import read_manifest
from yup.runner import PackageManagerRunner
from yup.snapshot import SnapshotManager

logger = logging.getLogger(__name__)

_INTERRUPT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class State(Enum):
    """Workflow states."""

    IDLE = "idle"
    READING = "reading"
    CLASSIFYING = "classifying"
    BACKING_UP = "backing_up"
    REMOVING = "removing"
    UPGRADING = "upgrading"
    COMMITTING = "committing"
    ROLLING_BACK = "rolling_back"
    TERMINATED = "terminated"


# States in which the running package manager is cancelled on interrupt.
_CANCELLABLE = (State.REMOVING, State.UPGRADING)
# States that run to completion even when interrupted.
_FINISHING = (State.COMMITTING, State.ROLLING_BACK, State.TERMINATED)


def _plural(count: int) -> str:
    return "" if count == 1 else "s"


class UpgradeWorkflow:
    """Drives one guarded upgrade run.

    Args:
        config: Paths and package manager command.
        runner: Package manager runner; built from ``config`` when omitted.
    """

    def __init__(self, config: UpgradeConfig, runner: Optional[PackageManagerRunner] = None):
        self.config = config
        self.runner = runner or PackageManagerRunner(config.manager, cwd=config.directory)
        self.state = State.IDLE
        self.interrupted = False
        self.snapshot: Optional[SnapshotManager] = None
        self._task: Optional[asyncio.Task] = None
        self._rolled_back = False

    def _enter(self, state: State) -> None:
        if is_debug_enabled(logger):
            logger.debug(
                "State transition",
                extra=extra_context(
                    event="state",
                    component="workflow",
                    action="transition",
                    source=self.state.value,
                    target=state.value,
                ),
            )
        self.state = state

    def interrupt(self) -> None:
        """Handle an external interrupt according to the current state."""
        if self.state in _FINISHING:
            logger.warning("Interrupt received while %s; finishing first.", self.state.value.replace("_", " "))
            return
        if self.interrupted:
            logger.warning("Interrupt already received; rolling back.")
            return
        self.interrupted = True
        logger.warning("Interrupt received.")
        if self.state in _CANCELLABLE and self._task is not None and not self._task.done():
            self._task.cancel()

    async def run(self, requested_names: Sequence[str]) -> int:
        """Run the workflow and return the process exit code."""
        self._task = asyncio.current_task()
        code = await self._run(list(requested_names))
        self._enter(State.TERMINATED)
        return code

    async def abort(self) -> int:
        """Roll back after an interrupt tore down the task running ``run()``.

        Any package manager child that task left behind is stopped first.
        """
        self.interrupted = True
        await self.runner.stop()
        if self.snapshot is None or self._rolled_back or self.state in _FINISHING:
            return ExitCodes.SUCCESS.value
        return await self._rollback(interrupted=True)

    async def _run(self, requested_names: List[str]) -> int:
        try:
            dev_requests, regular_requests = self._prepare(requested_names)
        except (UsageError, ManifestReadError) as e:
            logger.error("%s", e)
            return ExitCodes.FAILURE.value

        requests = dev_requests + regular_requests
        if not requests:
            logger.warning("Nothing to upgrade. Exiting.")
            return ExitCodes.SUCCESS.value
        if self.interrupted:
            logger.warning("Interrupted before any changes were made.")
            return ExitCodes.SUCCESS.value

        self._log_plan(requests)

        self._enter(State.BACKING_UP)
        self.snapshot = SnapshotManager(self.config.guarded_files())
        try:
            await self.snapshot.backup()
        except BackupError as e:
            logger.error("Could not create backups, nothing was changed: %s", e)
            return ExitCodes.FAILURE.value
        if self.interrupted:
            return await self._rollback(interrupted=True)

        try:
            upgraded = await self._mutate(requests, dev_requests, regular_requests)
        except asyncio.CancelledError:
            if not self.interrupted:
                raise
            return await self._rollback(interrupted=True)
        except PackageManagerError as e:
            logger.error("%s", e)
            upgraded = False
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("yup encountered an error when trying to upgrade packages")
            await self._rollback(interrupted=False)
            return ExitCodes.FAILURE.value

        if not upgraded:
            logger.error("Not all packages could be upgraded.")
            return await self._rollback(interrupted=False)

        self._enter(State.COMMITTING)
        try:
            await self.snapshot.commit()
        except BackupError as e:
            logger.error("Packages were upgraded but backups could not be removed: %s", e)
            return ExitCodes.FAILURE.value

        logger.info("Package%s upgraded successfully", _plural(len(requests)))
        return ExitCodes.SUCCESS.value

    def _prepare(self, requested_names: List[str]) -> Tuple[List[PackageRequest], List[PackageRequest]]:
        if not requested_names:
            raise UsageError(f"No package specified. Try using with {Constants.USAGE_HINT}")

        self._enter(State.READING)
        manifest = read_manifest(self.config.manifest_path)

        self._enter(State.CLASSIFYING)
        return classify(requested_names, manifest.dependencies, manifest.dev_dependencies)

    async def _mutate(
        self,
        requests: List[PackageRequest],
        dev_requests: List[PackageRequest],
        regular_requests: List[PackageRequest],
    ) -> bool:
        self._enter(State.REMOVING)
        result = await self.runner.remove(requests)
        if not result.ok:
            return False

        # Sequential: both invocations rewrite the same manifest.
        self._enter(State.UPGRADING)
        for group, flags in ((dev_requests, [self.config.dev_flag]), (regular_requests, [])):
            result = await self.runner.upgrade(group, flags)
            if not result.ok:
                return False
        return True

    async def _rollback(self, interrupted: bool) -> int:
        if self._rolled_back:
            raise RuntimeError("Rollback already performed")
        self._rolled_back = True
        self._enter(State.ROLLING_BACK)
        logger.warning("Restoring %s and %s from backup.", self.config.manifest_name, self.config.lockfile_name)

        assert self.snapshot is not None
        try:
            await self.snapshot.rollback()
        except RestoreError as e:
            logger.critical(
                "Could not restore the original files. Manual recovery required; backups left at: %s",
                ", ".join(e.remaining) or "(none)",
            )
            return ExitCodes.FAILURE.value

        logger.info("Original files restored.")
        return ExitCodes.SUCCESS.value if interrupted else ExitCodes.FAILURE.value

    @staticmethod
    def _log_plan(requests: List[PackageRequest]) -> None:
        lines = "".join(f"\n  * {r.label}" for r in requests)
        logger.info("Upgrading %d package%s:%s", len(requests), _plural(len(requests)), lines)


def run_workflow(workflow: UpgradeWorkflow, requested_names: Sequence[str]) -> int:
    """Run ``workflow`` on a fresh event loop with interrupt handlers installed.

    Returns:
        The process exit code.
    """
    loop = asyncio.new_event_loop()
    installed: List[int] = []
    try:
        for sig in _INTERRUPT_SIGNALS:
            try:
                loop.add_signal_handler(sig, workflow.interrupt)
                installed.append(sig)
            except (NotImplementedError, RuntimeError, ValueError):
                logger.debug("Signal handlers unavailable for %s", sig)
        main = loop.create_task(workflow.run(requested_names))
        while True:
            try:
                return loop.run_until_complete(main)
            except KeyboardInterrupt:
                # Fallback for platforms where signal handlers don't work (Windows)
                if main.done():
                    return loop.run_until_complete(workflow.abort())
                workflow.interrupt()
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
        loop.close()
