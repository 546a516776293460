"""Runtime configuration for the upgrade workflow.

Paths that the original tool assumed from the working directory are explicit
here. Values are layered: defaults, then a YAML/JSON config file, then
environment variables, then CLI arguments.
"""

from __future__ import annotations

import logging
import os
import shlex
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Tuple

import yaml

from yup.constants import Constants
from yup.errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass
class UpgradeConfig:
    """Configuration for a single yup run."""

    directory: str = "."
    manifest_name: str = Constants.PACKAGE_JSON_FILE
    lockfile_name: str = Constants.YARN_LOCK_FILE
    backup_prefix: str = Constants.BACKUP_PREFIX
    backup_suffix: str = Constants.BACKUP_SUFFIX
    manager: List[str] = field(default_factory=lambda: list(Constants.DEFAULT_MANAGER))
    dev_flag: str = Constants.DEV_FLAG

    @property
    def manifest_path(self) -> str:
        return os.path.join(self.directory, self.manifest_name)

    @property
    def lockfile_path(self) -> str:
        return os.path.join(self.directory, self.lockfile_name)

    def backup_path(self, name: str) -> str:
        """Return the backup location for a file named ``name``."""
        return os.path.join(
            self.directory, f"{self.backup_prefix}{name}{self.backup_suffix}"
        )

    def guarded_files(self) -> List[Tuple[str, str]]:
        """Return (original, backup) pairs for the manifest and lockfile."""
        return [
            (self.manifest_path, self.backup_path(self.manifest_name)),
            (self.lockfile_path, self.backup_path(self.lockfile_name)),
        ]

    def apply(self, values: Dict[str, Any]) -> None:
        """Overlay ``values`` onto this config, ignoring unknown keys."""
        known = {f.name for f in fields(self)}
        for key, value in values.items():
            if key not in known:
                logger.warning("Ignoring unknown config key: %s", key)
                continue
            if value is None:
                continue
            if key == "manager":
                value = _split_command(value)
            setattr(self, key, value)

    @classmethod
    def from_args(cls, args: Any, environ: Optional[Dict[str, str]] = None) -> "UpgradeConfig":
        """Create config from CLI arguments.

        Args:
            args: Parsed CLI arguments namespace.
            environ: Environment mapping; defaults to ``os.environ``.

        Returns:
            UpgradeConfig instance.
        """
        env = os.environ if environ is None else environ
        config = cls()

        config_path = getattr(args, "CONFIG", None)
        if config_path:
            config.apply(load_config_file(config_path))

        if env.get(Constants.ENV_MANAGER):
            config.manager = _split_command(env[Constants.ENV_MANAGER])

        if getattr(args, "DIRECTORY", None):
            config.directory = args.DIRECTORY
        if getattr(args, "MANAGER", None):
            config.manager = _split_command(args.MANAGER)

        if not config.manager:
            raise ConfigError("Package manager command must not be empty")
        return config


def _split_command(value: Any) -> List[str]:
    if isinstance(value, str):
        return shlex.split(value)
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    raise ConfigError(f"Invalid package manager command: {value!r}")


def load_config_file(config_path: str) -> Dict[str, Any]:
    """Load configuration from a YAML or JSON file.

    A top-level ``yup:`` section is used when present, otherwise the whole
    document.

    Args:
        config_path: Path to YAML/JSON config file.

    Returns:
        Configuration dict.

    Raises:
        ConfigError: If the file is missing, unreadable or not a mapping.
    """
    if not os.path.isfile(config_path):
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load config {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a mapping: {config_path}")

    section = data.get(Constants.CONFIG_SECTION, data)
    if not isinstance(section, dict):
        raise ConfigError(
            f"'{Constants.CONFIG_SECTION}' section must be a mapping: {config_path}"
        )
    logger.debug("Loaded config from %s", config_path)
    return section
