"""Pytest configuration and fixtures."""

import asyncio
import os

import pytest


@pytest.fixture
def event_loop_policy():
    """Use the default event loop policy for all async tests."""
    return asyncio.DefaultEventLoopPolicy()


@pytest.fixture(autouse=True)
def _isolate_coingecko_env(monkeypatch):
    """Keep a developer's real COINGECKO_* settings out of the tests."""
    for name in list(os.environ):
        if name.startswith("COINGECKO_"):
            monkeypatch.delenv(name, raising=False)
