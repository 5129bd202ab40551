"""Pytest configuration for assistant_toolkit tests."""

from __future__ import annotations

from datetime import datetime

import pytest
from dotenv import load_dotenv

# Ensure pytest-asyncio is always available so async tests execute without
# requiring plugins to be explicitly enabled via command line options.
pytest_plugins = ("pytest_asyncio",)

load_dotenv()

# Fixed "now" shared by capability provider tests: a Sunday.
FIXED_NOW = datetime(2026, 2, 1, 9, 0)


@pytest.fixture
def fixed_now() -> datetime:
    """Return the fixed clock value used by calendar and reminders tests."""
    return FIXED_NOW


@pytest.fixture(autouse=True)
def _no_provider_keys(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep unit tests independent of real API keys found in the environment."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
