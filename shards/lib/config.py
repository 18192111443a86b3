"""Configuration loading: YAML files, .env files and ${VAR} expansion.

Connection YAML example (orders.yaml):
    connection:
      host: ${AZURE_SQL_HOST}
      database: Orders
      user: ${AZURE_SQL_USER}
      password: ${AZURE_SQL_PASSWORD}

    sharding:
      federationName: Orders_Federation
      distributionKey: CustID
      filteringEnabled: false

Secrets stay out of the file: they are read from the environment, which
``load_env_file`` can populate from a .env file (python-dotenv).
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import load_dotenv

from shards.lib.errors import ConfigurationError

logger = logging.getLogger(__name__)

__all__ = [
    "expand_env_vars",
    "expand_options",
    "load_connection_config",
    "load_env_file",
    "load_yaml",
    "parse_bool",
]

# ${VAR_NAME}; a bare $ is left alone so passwords may contain it
ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")

_TRUE_STRINGS = frozenset({"true", "yes", "on", "1"})
_FALSE_STRINGS = frozenset({"false", "no", "off", "0"})


def load_env_file(
    path: Optional[Union[str, Path]] = None,
    *,
    override: bool = False,
) -> bool:
    """Load environment variables from a .env file.

    Without ``path`` python-dotenv searches the current directory and its
    parents. Returns True if a file was found and loaded.
    """
    loaded = load_dotenv(dotenv_path=path, override=override)
    if loaded:
        logger.debug("Loaded environment from %s", path or ".env")
    return loaded


def expand_env_vars(value: str) -> str:
    """Replace each ``${VAR}`` in ``value``; an unset VAR is an error.

    Example:
        >>> os.environ["AZURE_SQL_HOST"] = "srv.database.windows.net"
        >>> expand_env_vars("${AZURE_SQL_HOST}")
        'srv.database.windows.net'
    """

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        if var_name not in os.environ:
            raise ConfigurationError(
                f"Environment variable not set: {var_name}",
                field=var_name,
                suggestion="Export it or add it to the file passed with --env-file.",
            )
        return os.environ[var_name]

    return ENV_VAR_PATTERN.sub(replacer, value)


def expand_options(options: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of a config section with ``${VAR}`` expanded in string values.

    Nested sections are expanded too.
    """
    result: Dict[str, Any] = {}
    for key, value in options.items():
        if isinstance(value, dict):
            value = expand_options(value)
        elif isinstance(value, str):
            value = expand_env_vars(value)
        result[key] = value
    return result


def parse_bool(value: Any, *, field: str, default: bool = False) -> bool:
    """Read a yes/no setting that may arrive as a string from ``${VAR}``.

    Accepts booleans, the integers 0 and 1, and true/false, yes/no,
    on/off, 1/0 in any case. ``None`` means unset and gives ``default``.

    Example:
        >>> parse_bool("OFF", field="filteringEnabled")
        False
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in _TRUE_STRINGS:
            return True
        if normalized in _FALSE_STRINGS:
            return False
    raise ConfigurationError(
        f"'{field}' must be a boolean, got {value!r}.",
        field=field,
        value=value,
        suggestion="Use true/false, yes/no, on/off or 1/0.",
    )


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a YAML file whose top level must be a mapping."""
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}", field="path", value=path)

    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in {path}: {e}", field="path", value=path
            ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Top level of {path} must be a mapping, got {type(data).__name__}.",
            field="path",
            value=path,
        )
    return data


def load_connection_config(path: Union[str, Path]) -> Dict[str, Any]:
    """Load a connection YAML file and expand env vars in all values."""
    data = load_yaml(path)
    if "sharding" not in data:
        raise ConfigurationError(
            f"{path} has no 'sharding' section.",
            field="sharding",
            suggestion="Add federationName and distributionKey under 'sharding'.",
        )
    logger.debug("Loaded connection config from %s", path)
    return expand_options(data)
