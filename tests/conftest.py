"""
Shared test fixtures: fake providers, an in-memory TTL cache and a controllable clock.
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from domain.models.rate import CurrencyPair
from infrastructure.cache.redis_cache import RedisCacheService
from infrastructure.persistence.repositories.rate_history import RateHistoryRepository

START = datetime(2025, 11, 5, 10, 0, 0, tzinfo=UTC)


class FakeClock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeProvider:
    """Provider returning a fixed rate, or raising when given an exception."""

    def __init__(self, name: str, result):
        self._name = name
        self.fetch_rate = AsyncMock()
        if isinstance(result, BaseException):
            self.fetch_rate.side_effect = result
        else:
            self.fetch_rate.return_value = Decimal(str(result))
        self.close = AsyncMock()

    @property
    def name(self) -> str:
        return self._name


class InMemoryTTLCache:
    """Stand-in for the Redis cache that honours TTLs against a FakeClock."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.entries: dict[str, tuple[Decimal, datetime]] = {}
        self.set_calls = 0

    async def get_rate(self, pair_key: str) -> Decimal | None:
        entry = self.entries.get(pair_key)
        if entry is None:
            return None
        rate, expires_at = entry
        if self.clock() >= expires_at:
            del self.entries[pair_key]
            return None
        return rate

    async def set_rate(self, pair_key: str, rate: Decimal, ttl: timedelta | None = None) -> None:
        self.set_calls += 1
        self.entries[pair_key] = (rate, self.clock() + (ttl or timedelta(seconds=60)))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mock_cache():
    cache = AsyncMock(spec=RedisCacheService)
    cache.get_rate.return_value = None
    return cache


@pytest.fixture
def mock_history():
    history = AsyncMock(spec=RateHistoryRepository)
    history.find_latest.return_value = None
    return history


@pytest.fixture
def btc_usd():
    return CurrencyPair('BTC', 'USD')


@pytest.fixture
def weights():
    return {'coinbase': Decimal('0.4'), 'binance': Decimal('0.4'), 'coingecko': Decimal('0.2')}


@pytest.fixture
def make_provider():
    return FakeProvider


@pytest.fixture
def ttl_cache(clock):
    return InMemoryTTLCache(clock)
