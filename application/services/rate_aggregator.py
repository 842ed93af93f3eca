import asyncio
import logging
from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime, timedelta
from decimal import Decimal

from redis.exceptions import RedisError

from domain.aggregation import (
    DEFAULT_OUTLIER_THRESHOLD,
    DEFAULT_PROVIDER_WEIGHT,
    calculate_confidence,
    calculate_spread,
    filter_outliers,
    weighted_average,
)
from domain.exceptions.rate import CacheError, RateUnavailableError
from domain.models.rate import (
    AggregatedRate,
    CurrencyPair,
    ProviderQuote,
    RateQuote,
    RateRecord,
    RateSource,
)
from infrastructure.cache.redis_cache import RedisCacheService
from infrastructure.persistence.repositories.rate_history import RateHistoryRepository
from infrastructure.providers.base import RateProvider

logger = logging.getLogger(__name__)

# Raised by the cache layer; none of them may stop a rate from being served.
CACHE_ERRORS = (CacheError, RedisError, OSError)


def utc_now() -> datetime:
    return datetime.now(UTC)


class RateAggregatorService:
    """Combines quotes from several unreliable providers into one consensus rate.

    Owns weighting, outlier rejection, confidence scoring, caching and the
    history fallback. The per-pair "last success" map lives on the instance;
    every replica keeps its own.

    Concurrent cache misses for the same pair are not deduplicated: both
    callers fetch, persist and write the cache.
    """

    def __init__(
        self,
        providers: Sequence[RateProvider],
        cache: RedisCacheService,
        history: RateHistoryRepository,
        weights: Mapping[str, Decimal] | None = None,
        default_weight: Decimal = DEFAULT_PROVIDER_WEIGHT,
        outlier_threshold: Decimal = DEFAULT_OUTLIER_THRESHOLD,
        cache_ttl: timedelta = timedelta(seconds=60),
        valid_for: timedelta = timedelta(seconds=90),
        monitored_pairs: Sequence[CurrencyPair] = (),
        clock: Callable[[], datetime] = utc_now,
    ):
        if cache_ttl >= valid_for:
            raise ValueError("cache_ttl must be shorter than the valid-until horizon")

        self.providers = list(providers)
        self.cache = cache
        self.history = history
        self.weights = dict(weights or {})
        self.default_weight = default_weight
        self.outlier_threshold = outlier_threshold
        self.cache_ttl = cache_ttl
        self.valid_for = valid_for
        self.monitored_pairs = list(monitored_pairs)
        self.clock = clock
        self.last_success: dict[str, datetime] = {}

    async def get_rate(self, crypto: str, fiat: str) -> Decimal:
        pair = CurrencyPair(crypto=crypto, fiat=fiat)

        try:
            cached_rate = await self.cache.get_rate(pair.key)
        except CACHE_ERRORS as e:
            logger.warning(f"Cache read failed for {pair.key}, treating as miss: {e}")
            cached_rate = None

        if cached_rate is not None:
            logger.debug(f"Cache hit for {pair.key}: {cached_rate}")
            return cached_rate

        return await self.fetch_and_aggregate_rate(pair.crypto, pair.fiat)

    async def convert_amount(self, amount: Decimal, crypto: str, fiat: str) -> Decimal:
        converted, _ = await self.convert_with_rate(amount, crypto, fiat)
        return converted

    async def convert_with_rate(self, amount: Decimal, crypto: str, fiat: str) -> tuple[Decimal, Decimal]:
        """Converted amount together with the rate it was computed from."""
        rate = await self.get_rate(crypto, fiat)
        return amount * rate, rate

    async def get_historical_rates(
        self,
        crypto: str,
        fiat: str,
        start: datetime,
        end: datetime,
        source: RateSource = RateSource.AGGREGATED,
    ) -> list[RateRecord]:
        pair = CurrencyPair(crypto=crypto, fiat=fiat)
        return await self.history.find_range(pair, source, start, end)

    async def fetch_and_aggregate_rate(self, crypto: str, fiat: str) -> Decimal:
        """
        Fetch from every provider and persist the consensus:
        1. Query all providers concurrently and wait for all of them
        2. Fall back to history if none succeeded
        3. Persist every quote, reject outliers, weight and score the rest
        4. Persist the aggregate, cache it and mark the pair fresh
        """
        pair = CurrencyPair(crypto=crypto, fiat=fiat)
        logger.debug(f"Fetching rates for {pair.key}...")

        successes, errors = await self._query_providers(pair)
        if not successes:
            logger.warning(f"All providers failed for {pair.key}: {errors}")
            return await self._fallback_rate(pair)

        now = self.clock()
        valid_until = now + self.valid_for

        await self.history.save_quotes(
            [
                RateQuote(
                    pair=pair,
                    source=RateSource.for_provider(q.provider),
                    rate=q.rate,
                    observed_at=now,
                    valid_until=valid_until,
                )
                for q in successes
            ]
        )

        valid_rates = filter_outliers(successes, self.outlier_threshold)
        if not valid_rates:
            logger.warning(f"Outlier filter rejected every quote for {pair.key}, treating as total failure")
            return await self._fallback_rate(pair)

        spread_percent = calculate_spread(valid_rates)
        rate = weighted_average(valid_rates, self.weights, self.default_weight)
        confidence = calculate_confidence(len(valid_rates), len(self.providers), spread_percent)

        aggregate = AggregatedRate(
            pair=pair,
            rate=rate,
            bid=min(q.rate for q in valid_rates),
            ask=max(q.rate for q in valid_rates),
            spread_percent=spread_percent,
            confidence_score=confidence,
            provider_breakdown={q.provider: q.rate for q in successes},
            created_at=now,
            valid_until=valid_until,
        )

        logger.info(
            f"{pair.key}: rate={rate} confidence={confidence:.2f} spread={spread_percent:.2f}%"
        )

        await self.history.save_aggregate(aggregate)
        try:
            await self.cache.set_rate(pair.key, rate, self.cache_ttl)
        except CACHE_ERRORS as e:
            logger.warning(f"Cache write failed for {pair.key}: {e}")
        self.last_success[pair.key] = self.clock()

        return rate

    async def refresh_monitored_pairs(self) -> dict[str, bool]:
        """Refresh each monitored pair in turn; one failing pair never stops the rest."""
        logger.info("Starting scheduled rate update...")
        results = {}
        for pair in self.monitored_pairs:
            try:
                await self.fetch_and_aggregate_rate(pair.crypto, pair.fiat)
                results[pair.key] = True
            except Exception as e:
                logger.error(f"Scheduled update failed for {pair.key}: {e}")
                results[pair.key] = False
        logger.info(
            f"Scheduled rate update completed: {sum(results.values())}/{len(results)} pairs updated"
        )
        return results

    def last_success_at(self, pair: CurrencyPair) -> datetime | None:
        return self.last_success.get(pair.key)

    async def _query_providers(self, pair: CurrencyPair) -> tuple[list[ProviderQuote], list[str]]:
        tasks = [provider.fetch_rate(pair.key) for provider in self.providers]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        successes: list[ProviderQuote] = []
        errors: list[str] = []
        for provider, result in zip(self.providers, results, strict=True):
            if isinstance(result, BaseException):
                logger.error(f"Provider {provider.name} failed for {pair.key}: {result}")
                errors.append(f"{provider.name}: {result}")
            else:
                successes.append(ProviderQuote(provider=provider.name, rate=Decimal(str(result))))
        return successes, errors

    async def _fallback_rate(self, pair: CurrencyPair) -> Decimal:
        """Last persisted aggregate; the cache and staleness clock are left untouched."""
        last = await self.history.find_latest(pair, RateSource.AGGREGATED)
        if last is None:
            raise RateUnavailableError(
                f"No rate available for {pair.key} from any source including history"
            )

        logger.warning(
            f"Fallback: using stored rate {last.rate} for {pair.key} from {last.created_at.isoformat()}"
        )
        return last.rate
