"""Argument parsing functionality for nuresolve."""

import argparse
from typing import List, Optional

from constants import Constants


def _add_command_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-d", "--dependencies",
                        dest="DEPENDENCIES_FILE",
                        help=f"Path to the dependencies file (default: {Constants.DEPENDENCIES_FILE})",
                        action="store",
                        type=str,
                        default=Constants.DEPENDENCIES_FILE)
    parser.add_argument("--lock",
                        dest="LOCK_FILE",
                        help=f"Path to the lock file (default: {Constants.LOCK_FILE})",
                        action="store",
                        type=str,
                        default=Constants.LOCK_FILE)
    parser.add_argument("--force",
                        dest="FORCE",
                        help="Ignore cached package details; for install, also resolve even if the lock file is current",
                        action="store_true")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with global options and subcommands."""
    parser = argparse.ArgumentParser(
        prog="nuresolve",
        description="nuresolve - NuGet dependency resolver and lock file manager",
        add_help=True,
    )

    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Only output warnings and errors to the console.",
                        action="store_true")
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help=f"Path to configuration file (YAML, default: {Constants.CONFIG_FILE} if present)",
                        action="store",
                        type=str)

    subparsers = parser.add_subparsers(dest="COMMAND", metavar="{install,update}")
    subparsers.required = True

    install = subparsers.add_parser(
        "install",
        help="Resolve dependencies, reusing the lock file when it is still current",
    )
    _add_command_arguments(install)

    update = subparsers.add_parser(
        "update",
        help="Resolve dependencies from scratch and rewrite the lock file",
    )
    _add_command_arguments(update)

    return parser


def parse_args(argv: Optional[List[str]] = None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
