"""Constants used in the project."""

import logging
import os
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    PARSE_ERROR = 3
    RESOLUTION_ERROR = 4


class RepositoryTypes(Enum):
    """Section headers of the lock file.

    Args:
        Enum (string): Repository types persisted in the lock file.
    """

    NUGET = "NUGET"
    GITHUB = "GITHUB"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    DEPENDENCIES_FILE = "nuresolve.dependencies"
    LOCK_FILE = "nuresolve.lock"
    CONFIG_FILE = "nuresolve.yml"
    ENV_CONFIG = "NURESOLVE_CONFIG"
    ENV_LOG_LEVEL = "NURESOLVE_LOG_LEVEL"
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests

    DEFAULT_NUGET_SOURCE = "https://www.nuget.org/api/v2"
    DEFAULT_GITHUB_REF = "master"
    GITHUB_API_BASE = "https://api.github.com"
    ENV_GITHUB_TOKEN = "GITHUB_TOKEN"

    RESOLVER_MAX_WORKERS = 8
    RESOLVER_MAX_ATTEMPTS = 0  # 0 = cap at the number of available versions
    ORACLE_CACHE_TTL_SEC = 600
    NUGET_CACHE_DIR = os.path.join(os.path.expanduser("~"), ".nuresolve", "cache")

    STRICT_MARKER = "REFERENCES: STRICT"


# (yaml section, yaml key, Constants attribute, coercion)
_CONFIG_KEYS = [
    ("http", "timeout", "REQUEST_TIMEOUT", int),
    ("resolver", "max_workers", "RESOLVER_MAX_WORKERS", int),
    ("resolver", "max_attempts", "RESOLVER_MAX_ATTEMPTS", int),
    ("sources", "default", "DEFAULT_NUGET_SOURCE", str),
    ("cache", "ttl_sec", "ORACLE_CACHE_TTL_SEC", int),
    ("cache", "dir", "NUGET_CACHE_DIR", str),
    ("github", "api_base", "GITHUB_API_BASE", str),
]


def _config_path(explicit: Optional[str] = None) -> Optional[str]:
    """Pick the configuration file: CLI path, then env var, then ./nuresolve.yml."""
    if explicit:
        return explicit
    env_path = os.environ.get(Constants.ENV_CONFIG)
    if env_path:
        return env_path
    if os.path.isfile(Constants.CONFIG_FILE):
        return Constants.CONFIG_FILE
    return None


def apply_config(data: Dict[str, Any]) -> None:
    """Apply a parsed configuration mapping onto Constants.

    Unknown sections and keys are ignored; values that cannot be coerced are
    logged and skipped so a bad entry never hides the good ones.
    """
    for section, key, attribute, coerce in _CONFIG_KEYS:
        block = data.get(section)
        if not isinstance(block, dict) or key not in block:
            continue
        try:
            setattr(Constants, attribute, coerce(block[key]))
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid config value %s.%s=%r", section, key, block[key])


def _load_yaml_config(path: Optional[str] = None) -> Optional[str]:
    """Load YAML configuration into Constants.

    Returns:
        The path that was loaded, or None when no configuration file applies.
    """
    config_path = _config_path(path)
    if not config_path:
        return None

    import yaml  # pylint: disable=import-outside-toplevel

    try:
        with open(config_path, encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except FileNotFoundError:
        logger.warning("Config file not found: %s", config_path)
        return None
    except yaml.YAMLError as exc:
        logger.warning("Failed to parse config file %s: %s", config_path, exc)
        return None

    if not isinstance(data, dict):
        logger.warning("Config file %s does not contain a mapping, ignoring", config_path)
        return None

    apply_config(data)
    logger.debug("Loaded configuration from %s", config_path)
    return config_path
