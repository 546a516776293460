"""Backup and restore of the files a package manager is about to mutate.

A ``SnapshotManager`` guards one set of (original, backup) pairs for one run:
``backup()`` copies every original aside, then exactly one of ``commit()``
(drop the copies) or ``rollback()`` (move the copies back) consumes the set.
The file operations of each step run concurrently in worker threads and are
joined before the step is judged.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

from yup.common.logging_utils import Timer, extra_context, is_debug_enabled
from yup.errors import BackupError, RestoreError

logger = logging.getLogger(__name__)

BackupPair = Tuple[str, str]


async def _fan_out(
    func: Callable[..., object], calls: Sequence[Tuple[object, ...]]
) -> List[Optional[BaseException]]:
    """Run ``func`` over ``calls`` in threads and return one error slot per call."""
    results = await asyncio.gather(
        *(asyncio.to_thread(func, *call) for call in calls),
        return_exceptions=True,
    )
    errors: List[Optional[BaseException]] = []
    for result in results:
        if isinstance(result, asyncio.CancelledError):
            raise result
        errors.append(result if isinstance(result, BaseException) else None)
    return errors


def _remove_if_exists(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass


class SnapshotManager:
    """Backup set for a guarded operation.

    Originals that do not exist when ``backup()`` runs (a project without a
    lockfile yet) are remembered as absent: rollback deletes whatever the
    guarded operation created at those paths.
    """

    def __init__(self, pairs: Sequence[BackupPair]):
        self._pairs: List[BackupPair] = list(pairs)
        self._backed_up: List[BackupPair] = []
        self._absent: List[str] = []
        self._consumed = False

    @property
    def pairs(self) -> List[BackupPair]:
        return list(self._pairs)

    @property
    def backed_up(self) -> List[BackupPair]:
        """Pairs whose backup was written by ``backup()``."""
        return list(self._backed_up)

    @property
    def absent(self) -> List[str]:
        return list(self._absent)

    async def backup(self) -> None:
        """Copy every existing original to its backup path.

        Raises:
            BackupError: If a backup file is already present (left by an
                earlier run that could not be rolled back), or if any copy
                fails. In the latter case the backups that were written are
                removed again since no original has been touched yet.
        """
        stale = [dst for _, dst in self._pairs if os.path.lexists(dst)]
        if stale:
            raise BackupError(
                "Backup already exists at " + ", ".join(stale)
                + "; recover the original from it or delete it before running yup again",
                stale,
            )

        present = [(src, dst) for src, dst in self._pairs if os.path.exists(src)]
        self._absent = [src for src, _ in self._pairs if not os.path.exists(src)]
        for src in self._absent:
            logger.debug("Nothing to back up at %s; it will be removed on rollback", src)

        with Timer() as t:
            errors = await _fan_out(shutil.copy2, present)

        failed = [(pair, err) for pair, err in zip(present, errors) if err is not None]
        if failed:
            written = [pair for pair, err in zip(present, errors) if err is None]
            await _fan_out(_remove_if_exists, [(dst,) for _, dst in written])
            for (src, dst), err in failed:
                logger.debug("Backup of %s to %s failed: %s", src, dst, err)
            raise BackupError(
                "Could not back up " + ", ".join(src for (src, _), _ in failed),
                [src for (src, _), _ in failed],
            )

        self._backed_up = present
        if is_debug_enabled(logger):
            logger.debug(
                "Backups written",
                extra=extra_context(
                    event="backup",
                    component="snapshot",
                    action="backup",
                    count=len(present),
                    duration_ms=t.duration_ms(),
                ),
            )

    async def commit(self) -> None:
        """Delete the backups after the guarded operation succeeded.

        Raises:
            BackupError: If a backup could not be deleted.
        """
        self._consume("commit")
        backups = [dst for _, dst in self._backed_up]
        errors = await _fan_out(_remove_if_exists, [(dst,) for dst in backups])
        failed = [dst for dst, err in zip(backups, errors) if err is not None]
        if failed:
            raise BackupError("Could not remove backup " + ", ".join(failed), failed)
        logger.debug("Discarded %d backup(s)", len(backups))

    async def rollback(self) -> None:
        """Move every backup back onto its original.

        Raises:
            RestoreError: If any original could not be restored. The backups
                that were not moved stay on disk and are listed in the error.
        """
        self._consume("rollback")
        restores = list(self._backed_up)
        removals = list(self._absent)

        ops: List[Awaitable[List[Optional[BaseException]]]] = [
            _fan_out(os.replace, restores),
            _fan_out(_remove_if_exists, [(path,) for path in removals]),
        ]
        restore_errors, removal_errors = await asyncio.gather(*ops)

        remaining = [dst for (_, dst), err in zip(restores, restore_errors) if err is not None]
        stray = [path for path, err in zip(removals, removal_errors) if err is not None]
        for (src, dst), err in zip(restores, restore_errors):
            if err is not None:
                logger.error("Could not restore %s from %s: %s", src, dst, err)
        for path, err in zip(removals, removal_errors):
            if err is not None:
                logger.error("Could not remove %s: %s", path, err)

        if remaining or stray:
            raise RestoreError("Rollback did not complete", remaining)
        logger.debug("Restored %d file(s) from backup", len(restores))

    def _consume(self, action: str) -> None:
        if self._consumed:
            raise RuntimeError(f"Backup set already consumed; cannot {action}")
        self._consumed = True
