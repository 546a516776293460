"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FAILURE = 1


class DependencyKind(Enum):
    """Manifest section a package was found in.

    Args:
        Enum (string): Manifest field name for the section.
    """

    DEPENDENCY = "dependency"
    DEV_DEPENDENCY = "devDependency"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    PACKAGE_JSON_FILE = "package.json"
    YARN_LOCK_FILE = "yarn.lock"
    BACKUP_PREFIX = "."
    BACKUP_SUFFIX = ".yup-backup"
    DEFAULT_MANAGER = ["yarn"]
    DEV_FLAG = "--dev"
    REMOVE_SUBCOMMAND = "remove"
    ADD_SUBCOMMAND = "add"
    CONFIG_SECTION = "yup"
    ENV_LOG_LEVEL = "YUP_LOG_LEVEL"
    ENV_MANAGER = "YUP_MANAGER"
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
    CHILD_STDERR_INDENT = "  "
    USAGE_HINT = "yup package-name-1 [package-name-2]"
