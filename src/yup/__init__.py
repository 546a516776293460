"""yup - upgrade selected package.json dependencies behind a backup guard.

This package provides:
- manifest.py: package.json reader
- classifier.py: split requested names into dev and regular requests
- snapshot.py: backup/commit/rollback of the manifest and lockfile
- runner.py: package manager invocations (remove, add)
- workflow.py: the guarded upgrade state machine and signal handling
- cli.py: console entry point
"""

__version__ = "1.0.0"
