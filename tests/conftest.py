"""Shared test fixtures."""

import pytest

from fakes import FakeAggregator, FakeClock, FakeDexScreener


@pytest.fixture
def fake_dex() -> FakeDexScreener:
    return FakeDexScreener()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_aggregator() -> FakeAggregator:
    return FakeAggregator()
