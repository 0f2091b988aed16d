"""nuresolve: resolve NuGet dependencies into a lock file.

Entry point for the ``install`` and ``update`` commands.
"""
import functools
import logging
import os
import sys
from typing import Any, List, Optional

from args import parse_args
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from constants import Constants, ExitCodes, _load_yaml_config
from lockfile import LockFile
from registry.oracle import CachingOracle, FeedOracle, default_feed_factory
from versioning import service
from versioning.dependencies_file import DependenciesFile
from versioning.errors import (
    DependenciesFileParseError,
    FeedError,
    LockFileParseError,
    ResolutionError,
    VersionRangeParseError,
)

logger = logging.getLogger(__name__)


def _setup_logging(args: Any) -> None:
    """Configure logging based on CLI arguments.

    Args:
        args: Parsed CLI arguments.
    """
    level_name = "WARNING" if getattr(args, "QUIET", False) else str(getattr(args, "LOG_LEVEL", "INFO")).upper()
    os.environ[Constants.ENV_LOG_LEVEL] = level_name
    configure_logging(level_name)

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def _load_lock(path: str) -> Optional[LockFile]:
    if not os.path.isfile(path):
        logger.info("No lock file at %s", path)
        return None
    return LockFile.load(path)


def run(args: Any) -> int:
    """Execute the selected command and return the exit code value."""
    try:
        dependencies = DependenciesFile.load(args.DEPENDENCIES_FILE)
    except FileNotFoundError:
        logger.error("Dependencies file not found: %s, aborting", args.DEPENDENCIES_FILE)
        return ExitCodes.FILE_ERROR.value
    except OSError as exc:
        logger.error("IO error reading %s: %s, aborting", args.DEPENDENCIES_FILE, exc)
        return ExitCodes.FILE_ERROR.value
    except (DependenciesFileParseError, VersionRangeParseError) as exc:
        logger.error("%s", exc)
        return ExitCodes.PARSE_ERROR.value

    force = getattr(args, "FORCE", False)
    oracle = CachingOracle(FeedOracle(feed_factory=functools.partial(default_feed_factory, force=force)))
    try:
        if args.COMMAND == "install":
            lock = _load_lock(args.LOCK_FILE)
            result = service.install(dependencies, lock, oracle, force=force)
            if result is lock:
                return ExitCodes.SUCCESS.value
        else:
            result = service.resolve(dependencies, oracle)
        result.save(args.LOCK_FILE)
    except (LockFileParseError, VersionRangeParseError) as exc:
        logger.error("%s", exc)
        return ExitCodes.PARSE_ERROR.value
    except ResolutionError as exc:
        logger.error("Resolution failed: %s", exc)
        return ExitCodes.RESOLUTION_ERROR.value
    except FeedError as exc:
        logger.error("Could not pin source files: %s", exc)
        return ExitCodes.CONNECTION_ERROR.value
    except OSError as exc:
        logger.error("IO error: %s, aborting", exc)
        return ExitCodes.FILE_ERROR.value
    return ExitCodes.SUCCESS.value


def main(argv: Optional[List[str]] = None) -> None:
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)
    config_path = _load_yaml_config(getattr(args, "CONFIG", None))
    if config_path:
        logger.info("Loaded configuration from %s", config_path)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.COMMAND),
        )
    sys.exit(run(args))


if __name__ == "__main__":
    main()
