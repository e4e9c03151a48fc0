"""Configuration loading and validation."""

from toolserve.config.loader import load_config
from toolserve.config.schema import (
    DEV_SERPER_API_KEY,
    DuckDuckGoConfig,
    LoggingConfig,
    PermissionConfig,
    ServerConfig,
    ToolsConfig,
    ToolserveConfig,
    WebSearchConfig,
)

__all__ = [
    "DEV_SERPER_API_KEY",
    "DuckDuckGoConfig",
    "LoggingConfig",
    "PermissionConfig",
    "ServerConfig",
    "ToolsConfig",
    "ToolserveConfig",
    "WebSearchConfig",
    "load_config",
]
