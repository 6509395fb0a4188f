"""Loading of ``shipyard.yml`` with environment variable substitution."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from loguru import logger
from pydantic import ValidationError

from .models import Config, ConfigError

CONFIG_FILENAME = "shipyard.yml"
MANIFEST_DIR_ENV = "SHIPYARD_MANIFEST_DIR"

_PLACEHOLDER_PATTERN = re.compile(r"\$\{([^}]+)\}")


def resolve_root(root: Path | None = None) -> Path:
    """Find the manifest root and load its ``.env`` file.

    Precedence: explicit argument, ``SHIPYARD_MANIFEST_DIR``, current directory.
    Variables already present in the environment are never overridden.
    """
    if root is None:
        env_root = os.getenv(MANIFEST_DIR_ENV)
        root = Path(env_root) if env_root else Path.cwd()
    root = root.resolve()
    if not root.is_dir():
        raise ConfigError(f"Manifest root {root} is not a directory")

    env_file = root / ".env"
    if env_file.exists():
        load_dotenv(env_file, override=False)
        logger.debug(f"Loaded environment from {env_file}")
    return root


def substitute_env_vars(text: str) -> str:
    """
    Substitute environment variable placeholders in text.

    Supports formats:
    - ${VAR_NAME} - required variable (raises error if missing)
    - ${VAR_NAME:-default} - optional with default value
    - ${VAR_NAME:?error_message} - required with custom error message
    """

    def replacer(match: re.Match[str]) -> str:
        var_expr = match.group(1)

        if ":-" in var_expr:
            var_name, default = var_expr.split(":-", 1)
            return os.getenv(var_name, default)

        if ":?" in var_expr:
            var_name, error_msg = var_expr.split(":?", 1)
            value = os.getenv(var_name)
            if value is None:
                raise ConfigError(f"Required environment variable {var_name}: {error_msg}")
            return value

        value = os.getenv(var_expr)
        if value is None:
            raise ConfigError(f"Required environment variable {var_expr} not set")
        return value

    return _PLACEHOLDER_PATTERN.sub(replacer, text)


def load_config(root: Path) -> Config:
    """
    Load and validate ``shipyard.yml`` from the manifest root.

    Args:
        root: Manifest root directory

    Returns:
        The validated, read-only Config

    Raises:
        ConfigError: If the file is missing, a required environment variable is
                     unset, the YAML is malformed or the content is invalid
    """
    file_path = root / CONFIG_FILENAME
    if not file_path.exists():
        raise ConfigError(f"No {CONFIG_FILENAME} found in {root}")

    logger.info(f"Loading configuration from {file_path}")
    content = substitute_env_vars(file_path.read_text(encoding="utf-8"))

    try:
        loaded: dict[str, Any] | None = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing {CONFIG_FILENAME}: {e}") from e
    if not loaded:
        raise ConfigError(f"{CONFIG_FILENAME} is empty")

    try:
        config = Config.model_validate(loaded)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    logger.debug(
        f"Loaded {len(config.regions)} regions and {len(config.teams)} teams"
    )
    return config
