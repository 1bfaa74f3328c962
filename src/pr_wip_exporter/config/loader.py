"""Configuration loader with YAML parsing and environment variable substitution."""

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ..utils.async_helpers import ConfigurationError
from .schema import ExporterConfig


def substitute_env_vars(text: str) -> str:
    """
    Replace ${VAR_NAME} patterns with environment variable values.

    Args:
        text: Text containing ${VAR_NAME} patterns

    Returns:
        Text with environment variables substituted

    Raises:
        ConfigurationError: If a referenced environment variable is not found
    """

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigurationError(f"Environment variable {var_name} not found")
        return value

    return re.sub(r"\$\{([^}]+)\}", replacer, text)


def _describe(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "config"
        if err["type"] == "missing" and loc in ("github_token", "GITHUB_TOKEN"):
            parts.append("missing GITHUB_TOKEN env var")
        else:
            parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def load_config(path: Path | None = None) -> ExporterConfig:
    """
    Load configuration from the environment and an optional YAML file.

    Values in the YAML file take precedence over environment variables.
    ``${VAR}`` references in the file are substituted before parsing.

    Args:
        path: Optional path to a YAML configuration file

    Returns:
        Validated ExporterConfig instance

    Raises:
        FileNotFoundError: If ``path`` is given but doesn't exist
        ConfigurationError: If the token is missing or the config is invalid
    """
    data: dict[str, Any] = {}

    if path is not None:
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with path.open() as f:
            raw_yaml = f.read()

        try:
            loaded = yaml.safe_load(substitute_env_vars(raw_yaml))
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigurationError(f"Configuration root in {path} must be a mapping")
        data = loaded

    try:
        return ExporterConfig(**data)
    except ValidationError as e:
        raise ConfigurationError(_describe(e)) from e
