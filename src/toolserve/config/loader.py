"""Configuration loading for builtin servers.

Each layer is a TOML file and later layers win key by key::

    $XDG_CONFIG_HOME/toolserve/config.toml   user
    ./toolserve.toml                         project
    $TOOLSERVE_CONFIG                        must exist when set
    --config PATH                            must exist when given

Programmatic overrides go on top. Every ``[servers.<name>]`` table must
name a builtin server, so a misspelt table is an error instead of a
silently ignored toggle. When no layer sets ``tools.websearch.api_key``,
the key is read from the environment variable named by ``api_key_env``.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from toolserve.core.errors import ConfigError
from toolserve.servers.registry import server_names

from .schema import ToolserveConfig

CONFIG_ENV = "TOOLSERVE_CONFIG"
PROJECT_FILE = "toolserve.toml"


# ── Layers ───────────────────────────────────────────────────────


def _user_file() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME", "")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / "toolserve" / "config.toml"


def _required_file(value: str | Path, problem: str) -> Path:
    path = Path(value)
    if not path.is_file():
        msg = f"{problem}: {value}"
        raise ConfigError(msg)
    return path


def _config_layers(path: str | Path | None) -> list[Path]:
    """Files to merge, lowest priority first."""
    layers = [p for p in (_user_file(), Path.cwd() / PROJECT_FILE) if p.is_file()]
    env_path = os.environ.get(CONFIG_ENV)
    if env_path:
        layers.append(_required_file(env_path, f"{CONFIG_ENV} points to non-existent file"))
    if path is not None:
        layers.append(_required_file(path, "Config file not found"))
    return layers


def _read_layer(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {path}: {e}"
        raise ConfigError(msg) from e
    except OSError as e:
        msg = f"Cannot read config file {path}: {e}"
        raise ConfigError(msg) from e
    _check_server_tables(data, str(path))
    return data


def _check_server_tables(data: dict[str, Any], source: str) -> None:
    """Reject ``[servers.<name>]`` tables that name no builtin server."""
    servers = data.get("servers")
    if servers is None:
        return
    if not isinstance(servers, dict):
        msg = f"{source}: 'servers' must be a table"
        raise ConfigError(msg)
    known = server_names()
    unknown = sorted(name for name in servers if name not in known)
    if unknown:
        msg = (
            f"{source}: unknown builtin server in [servers]: {', '.join(unknown)}"
            f" (expected one of: {', '.join(known)})"
        )
        raise ConfigError(msg)


# ── Merge ────────────────────────────────────────────────────────


def _merge_tables(lower: dict[str, Any], upper: dict[str, Any]) -> dict[str, Any]:
    """Overlay *upper* on *lower*, descending into tables present in both."""
    merged = dict(lower)
    for key, value in upper.items():
        below = merged.get(key)
        if isinstance(below, dict) and isinstance(value, dict):
            merged[key] = _merge_tables(below, value)
        else:
            merged[key] = value
    return merged


def _fill_api_key(config: ToolserveConfig) -> None:
    websearch = config.tools.websearch
    if websearch.api_key is None and websearch.api_key_env:
        websearch.api_key = os.environ.get(websearch.api_key_env)


# ── Entry point ──────────────────────────────────────────────────


def load_config(
    path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> ToolserveConfig:
    """Merge the config layers and validate the result.

    Args:
        path: Explicit file from ``--config``; wins over every other file.
        overrides: Applied after all files.

    Raises:
        ConfigError: For a missing required file, invalid TOML, an unknown
            server table, or a value the schema rejects.
    """
    merged: dict[str, Any] = {}
    for layer in _config_layers(path):
        merged = _merge_tables(merged, _read_layer(layer))

    if overrides:
        _check_server_tables(overrides, "overrides")
        merged = _merge_tables(merged, overrides)

    try:
        config = ToolserveConfig.model_validate(merged)
    except ValidationError as e:
        msg = f"Configuration validation failed: {e}"
        raise ConfigError(msg) from e

    _fill_api_key(config)
    return config
