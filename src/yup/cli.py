"""CLI entry point for yup."""

from __future__ import annotations

import logging
import sys
from typing import Any, List, Optional

from yup.args import parse_args
from yup.common.logging_utils import add_file_handler, configure_logging
from yup.config import UpgradeConfig
from yup.constants import ExitCodes
from yup.errors import ConfigError
from yup.workflow import UpgradeWorkflow, run_workflow

logger = logging.getLogger(__name__)


def _setup_logging(args: Any) -> None:
    """Configure logging based on CLI arguments.

    Args:
        args: Parsed CLI arguments.
    """
    level = None
    level_name = getattr(args, "LOG_LEVEL", None)
    if level_name:
        level = getattr(logging, str(level_name).upper(), logging.INFO)
    configure_logging(level=level, quiet=bool(getattr(args, "QUIET", False)))

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        try:
            add_file_handler(log_file)
        except OSError as e:
            logger.error("Could not open log file %s: %s", log_file, e)
            sys.exit(ExitCodes.FAILURE.value)
        logger.debug("Logging to file: %s", log_file)


def main(argv: Optional[List[str]] = None) -> None:
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)

    try:
        config = UpgradeConfig.from_args(args)
    except ConfigError as e:
        logger.error("%s", e)
        sys.exit(ExitCodes.FAILURE.value)

    workflow = UpgradeWorkflow(config)
    sys.exit(run_workflow(workflow, args.PACKAGES))


if __name__ == "__main__":
    main()
