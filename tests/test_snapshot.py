"""Tests for the snapshot (backup/commit/rollback) manager."""

import asyncio
import os

import pytest

from conftest import read_bytes
from yup.errors import BackupError, RestoreError
from yup.snapshot import SnapshotManager


def _pairs(directory):
    d = str(directory)
    return [
        (os.path.join(d, "package.json"), os.path.join(d, ".package.json.yup-backup")),
        (os.path.join(d, "yarn.lock"), os.path.join(d, ".yarn.lock.yup-backup")),
    ]


def _snapshot(pairs):
    return {src: read_bytes(src) for src, _ in pairs}


def _scribble(pairs):
    for src, _ in pairs:
        with open(src, "wb") as f:
            f.write(b"mutated by the package manager\n")


class TestBackupRollback:
    """backup() followed by rollback()."""

    def test_round_trip_restores_bytes(self, project):
        pairs = _pairs(project)
        before = _snapshot(pairs)
        manager = SnapshotManager(pairs)

        asyncio.run(manager.backup())
        _scribble(pairs)
        asyncio.run(manager.rollback())

        assert _snapshot(pairs) == before
        assert not any(os.path.exists(dst) for _, dst in pairs)

    def test_round_trip_without_mutation(self, project):
        pairs = _pairs(project)
        before = _snapshot(pairs)
        manager = SnapshotManager(pairs)

        asyncio.run(manager.backup())
        asyncio.run(manager.rollback())

        assert _snapshot(pairs) == before
        assert not any(os.path.exists(dst) for _, dst in pairs)

    def test_backup_writes_copies(self, project):
        pairs = _pairs(project)
        manager = SnapshotManager(pairs)
        asyncio.run(manager.backup())
        for src, dst in pairs:
            assert read_bytes(dst) == read_bytes(src)
        assert manager.backed_up == pairs
        assert manager.absent == []

    def test_absent_original_is_removed_on_rollback(self, project):
        pairs = _pairs(project)
        lockfile = pairs[1][0]
        os.remove(lockfile)
        manager = SnapshotManager(pairs)

        asyncio.run(manager.backup())
        assert manager.absent == [lockfile]
        assert not os.path.exists(pairs[1][1])

        with open(lockfile, "w", encoding="utf-8") as f:
            f.write("created by the package manager\n")
        asyncio.run(manager.rollback())

        assert not os.path.exists(lockfile)

    def test_rollback_without_backup_is_safe(self, project):
        pairs = _pairs(project)
        before = _snapshot(pairs)
        asyncio.run(SnapshotManager(pairs).rollback())
        assert _snapshot(pairs) == before

    def test_failed_restore_leaves_backup_in_place(self, project):
        pairs = _pairs(project)
        manager = SnapshotManager(pairs)
        asyncio.run(manager.backup())
        _scribble(pairs)

        # A non-empty directory where the lockfile was cannot be replaced.
        lockfile, lock_backup = pairs[1]
        os.remove(lockfile)
        os.mkdir(lockfile)
        with open(os.path.join(lockfile, "keep"), "w", encoding="utf-8") as f:
            f.write("x")

        with pytest.raises(RestoreError) as exc_info:
            asyncio.run(manager.rollback())

        assert exc_info.value.remaining == [lock_backup]
        assert os.path.exists(lock_backup)
        # The manifest pair still succeeded.
        assert not os.path.exists(pairs[0][1])
        assert b"mutated" not in read_bytes(pairs[0][0])


class TestBackupCommit:
    """backup() followed by commit()."""

    def test_commit_keeps_originals_and_removes_backups(self, project):
        pairs = _pairs(project)
        before = _snapshot(pairs)
        manager = SnapshotManager(pairs)

        asyncio.run(manager.backup())
        asyncio.run(manager.commit())

        assert _snapshot(pairs) == before
        assert not any(os.path.exists(dst) for _, dst in pairs)

    def test_commit_keeps_mutated_originals(self, project):
        pairs = _pairs(project)
        manager = SnapshotManager(pairs)
        asyncio.run(manager.backup())
        _scribble(pairs)
        asyncio.run(manager.commit())
        assert all(b"mutated" in read_bytes(src) for src, _ in pairs)


class TestBackupFailure:
    """Backup failures leave nothing behind and overwrite nothing."""

    def test_partial_failure_raises_and_cleans_up(self, project):
        pairs = _pairs(project)
        bad_backup = os.path.join(str(project), "missing-dir", ".yarn.lock.yup-backup")
        pairs[1] = (pairs[1][0], bad_backup)
        manager = SnapshotManager(pairs)

        with pytest.raises(BackupError) as exc_info:
            asyncio.run(manager.backup())

        assert exc_info.value.paths == [pairs[1][0]]
        assert not os.path.exists(pairs[0][1])
        assert manager.backed_up == []

    def test_existing_backup_is_never_overwritten(self, project):
        pairs = _pairs(project)
        manifest, manifest_backup = pairs[0]
        good = read_bytes(manifest)
        with open(manifest_backup, "wb") as f:
            f.write(good)
        with open(manifest, "w", encoding="utf-8") as f:
            f.write('{"dependencies": {}}')
        manager = SnapshotManager(pairs)

        with pytest.raises(BackupError) as exc_info:
            asyncio.run(manager.backup())

        assert exc_info.value.paths == [manifest_backup]
        assert "recover the original" in str(exc_info.value)
        assert read_bytes(manifest_backup) == good
        assert not os.path.exists(pairs[1][1])
        assert manager.backed_up == []


class TestSingleUse:
    """A backup set is consumed exactly once."""

    @pytest.mark.parametrize("first,second", [
        ("commit", "rollback"),
        ("rollback", "commit"),
        ("rollback", "rollback"),
    ])
    def test_second_consumption_raises(self, project, first, second):
        manager = SnapshotManager(_pairs(project))
        asyncio.run(manager.backup())
        asyncio.run(getattr(manager, first)())
        with pytest.raises(RuntimeError):
            asyncio.run(getattr(manager, second)())
