"""Shared test fixtures for toolserve."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import pytest

from toolserve.config.schema import ToolserveConfig, WebSearchConfig
from toolserve.core.cancel import AbortSignal
from toolserve.tools.base import InvocationContext

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep user/project config files and API keys out of every test."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.delenv("TOOLSERVE_CONFIG", raising=False)
    monkeypatch.delenv("SERPER_API_KEY", raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    """Undo configure_logging() so caplog keeps seeing toolserve records."""
    logger = logging.getLogger("toolserve")
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture
def make_ctx() -> Any:
    """Factory fixture for InvocationContext with sensible defaults."""

    def _make(**overrides: Any) -> InvocationContext:
        defaults: dict[str, Any] = {
            "session_id": "ses_test",
            "message_id": "msg_test",
            "call_id": "call_test",
            "abort": AbortSignal(),
            "extra": {"model_id": "operator-1"},
        }
        defaults.update(overrides)
        return InvocationContext(**defaults)

    return _make


@pytest.fixture
def config() -> ToolserveConfig:
    return ToolserveConfig()


@pytest.fixture
def websearch_config() -> WebSearchConfig:
    """Web search config with short budgets and a fixed key."""
    return WebSearchConfig(api_key="test-key", timeout=2.0)
