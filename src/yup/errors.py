"""Exception hierarchy for yup.

Every fatal condition of the upgrade workflow maps to one of these types. The
workflow catches them once, at the top level, and turns them into a message
and an exit code. Unknown package names are not errors; they are logged and
skipped by the classifier.
"""

from __future__ import annotations

from typing import List, Optional, Sequence


class YupError(Exception):
    """Base class for all yup errors."""


class UsageError(YupError):
    """Raised when the command line does not name any package."""


class ConfigError(YupError):
    """Raised when an explicitly requested config file cannot be used."""


class ManifestReadError(YupError):
    """Raised when the manifest cannot be read from disk."""

    def __init__(self, path: str, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path


class ManifestParseError(ManifestReadError):
    """Raised when the manifest is not valid JSON or has malformed sections."""


class BackupError(YupError):
    """Raised when backups cannot be created or discarded."""

    def __init__(self, message: str, paths: Optional[Sequence[str]] = None):
        super().__init__(message)
        self.paths: List[str] = list(paths or [])


class PackageManagerError(YupError):
    """Raised when the package manager cannot be spawned.

    A child that starts and exits non-zero is not an error here; it is
    reported through a failed ``CommandResult``.
    """

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class RestoreError(YupError):
    """Raised when a rollback could not restore every original.

    ``remaining`` lists the backup files that were left on disk so the user
    can recover by hand.
    """

    def __init__(self, message: str, remaining: Sequence[str]):
        super().__init__(message)
        self.remaining: List[str] = list(remaining)
