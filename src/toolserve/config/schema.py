"""Pydantic models for toolserve configuration."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

# Development-only Serper key used when neither the config nor the
# environment provides one. Requests made with it are rejected upstream
# unless a local stub honours it.
DEV_SERPER_API_KEY = "toolserve-dev-key"

PermissionPolicy = Literal["allow", "ask", "deny"]


class ServerConfig(BaseModel):
    """Per-server settings."""

    enabled: bool = True


class WebSearchConfig(BaseModel):
    """Serper-backed web search tool configuration."""

    api_key: str | None = None
    api_key_env: str | None = "SERPER_API_KEY"
    endpoint: str = "https://google.serper.dev/search"
    image_endpoint: str = "https://google.serper.dev/images"
    timeout: float = Field(default=20.0, gt=0)
    default_results: int = Field(default=5, ge=1)
    max_results: int = Field(default=10, ge=1)
    max_image_count: int = Field(default=5, ge=0)
    max_image_bytes: int = Field(default=2 * 1024 * 1024, gt=0)
    country: str = "us"
    language: str = "en"
    require_operator_model: bool = True

    def resolved_api_key(self) -> str:
        """Return the configured key, falling back to the dev constant."""
        return self.api_key or DEV_SERPER_API_KEY


class DuckDuckGoConfig(BaseModel):
    """DuckDuckGo Instant Answer tool configuration."""

    endpoint: str = "https://duckduckgo.com/"
    timeout: float = Field(default=20.0, gt=0)
    result_cap: int = Field(default=6, ge=1)


class ToolsConfig(BaseModel):
    """Tool configuration."""

    websearch: WebSearchConfig = Field(default_factory=WebSearchConfig)
    duckduckgo: DuckDuckGoConfig = Field(default_factory=DuckDuckGoConfig)
    user_agent: str = "toolserve"


class PermissionConfig(BaseModel):
    """Per-tool permission policy."""

    websearch: PermissionPolicy = "allow"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    file: str = ""
    structured: bool = False


class ToolserveConfig(BaseModel):
    """Top-level configuration for toolserve."""

    servers: dict[str, ServerConfig] = Field(default_factory=dict)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    permission: PermissionConfig = Field(default_factory=PermissionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
