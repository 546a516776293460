"""Argument parsing functionality for yup."""

import argparse

from yup import __version__


def build_parser():
    """Build the argument parser for the yup command."""
    parser = argparse.ArgumentParser(
        prog="yup",
        description=(
            "yup - upgrade selected package.json dependencies to their declared "
            "version ranges, restoring package.json and the lockfile on failure"
        ),
        add_help=True,
    )

    parser.add_argument("PACKAGES",
                        help="Names of the packages to upgrade",
                        nargs="*",
                        metavar="PACKAGE")

    parser.add_argument("-C", "--directory",
                        dest="DIRECTORY",
                        help="Project directory containing package.json (default: current directory)",
                        action="store",
                        type=str)
    parser.add_argument("--manager",
                        dest="MANAGER",
                        help="Package manager command (default: yarn)",
                        action="store",
                        type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Only print errors to the console.",
                        action="store_true")
    parser.add_argument("--version",
                        action="version",
                        version=f"%(prog)s {__version__}")

    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
