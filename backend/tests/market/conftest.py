"""Fixtures for market data tests."""

import pytest

from market_fakes import FakeClock, FakeFetcher


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
