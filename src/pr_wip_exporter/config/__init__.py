"""Configuration loading and validation."""

from .loader import load_config
from .schema import (
    ExporterConfig,
    FileLoggingConfig,
    LoggingConfig,
    RefreshConfig,
    ServerConfig,
)

__all__ = [
    # Loader
    "load_config",
    # Root config
    "ExporterConfig",
    # Sections
    "FileLoggingConfig",
    "LoggingConfig",
    "RefreshConfig",
    "ServerConfig",
]
