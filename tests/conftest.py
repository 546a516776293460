"""Shared fixtures for yup tests."""

import json
import logging
import os
import sys

import pytest

from yup.config import UpgradeConfig

FAKE_YARN = os.path.join(os.path.dirname(__file__), "e2e_mocks", "fake_yarn.py")

MANIFEST = {
    "name": "demo",
    "version": "0.1.0",
    "dependencies": {"left-pad": "1.0.0", "lodash": "^4.17.0"},
    "devDependencies": {"jest": "^29.0.0"},
}
LOCKFILE = b"# yarn lockfile v1\n\nleft-pad@1.0.0:\n  version \"1.0.0\"\n"


def write_project(directory, manifest=None, lockfile=LOCKFILE):
    """Create package.json (and yarn.lock unless ``lockfile`` is None)."""
    with open(os.path.join(directory, "package.json"), "w", encoding="utf-8") as f:
        json.dump(MANIFEST if manifest is None else manifest, f, indent=2)
    if lockfile is not None:
        with open(os.path.join(directory, "yarn.lock"), "wb") as f:
            f.write(lockfile)


def read_bytes(path):
    with open(path, "rb") as f:
        return f.read()


@pytest.fixture
def project(tmp_path):
    """A project directory with the default manifest and lockfile."""
    write_project(str(tmp_path))
    return tmp_path


@pytest.fixture
def fake_yarn_env(monkeypatch, tmp_path):
    """Clear fake yarn controls and record invocations to a log file."""
    for key in ("FAKE_YARN_FAIL", "FAKE_YARN_HANG", "FAKE_YARN_MARKER"):
        monkeypatch.delenv(key, raising=False)
    log_path = tmp_path / "fake-yarn.log"
    monkeypatch.setenv("FAKE_YARN_LOG", str(log_path))
    return log_path


def read_invocations(log_path):
    if not os.path.exists(log_path):
        return []
    with open(log_path, "r", encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]


@pytest.fixture
def config(project):
    return UpgradeConfig(directory=str(project), manager=[sys.executable, FAKE_YARN])


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """Undo handler and level changes made by configure_logging()."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if (handler.get_name() or "").startswith("yup-"):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
