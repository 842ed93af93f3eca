import logging
from datetime import timedelta

from redis.asyncio import Redis

from application.services.rate_aggregator import RateAggregatorService
from application.services.staleness_monitor import StalenessMonitor
from config.settings import Settings, get_settings
from domain.models.rate import CurrencyPair
from infrastructure.cache.redis_cache import RedisCacheService
from infrastructure.persistence.database import Database
from infrastructure.persistence.repositories.rate_history import RateHistoryRepository
from infrastructure.providers import BinanceProvider, CoinbaseProvider, CoinGeckoProvider, RateProvider

logger = logging.getLogger(__name__)


class ServiceFactory:
	"""Creates and wires up all services with their dependencies."""

	def __init__(self, settings: Settings | None = None):
		self.settings = settings or get_settings()

		self.db = Database(self.settings.DATABASE_URL)
		self.redis_client = Redis.from_url(self.settings.REDIS_URL, decode_responses=True)
		self.cache = RedisCacheService(
			self.redis_client, rate_ttl=timedelta(seconds=self.settings.RATE_CACHE_TTL_SECONDS)
		)
		self.history = RateHistoryRepository(self.db)

		self.providers: list[RateProvider] = []
		self.rate_aggregator: RateAggregatorService | None = None
		self.staleness_monitor: StalenessMonitor | None = None

	def create_providers(self) -> list[RateProvider]:
		timeout = self.settings.PROVIDER_TIMEOUT_SECONDS
		return [
			CoinbaseProvider(timeout=timeout),
			BinanceProvider(timeout=timeout),
			CoinGeckoProvider(api_key=self.settings.COINGECKO_API_KEY, timeout=timeout),
		]

	async def create_rate_aggregator(self) -> RateAggregatorService:
		await self.db.create_tables()

		self.providers = self.create_providers()
		pairs = [CurrencyPair.parse(key) for key in self.settings.monitored_pair_keys]

		self.rate_aggregator = RateAggregatorService(
			providers=self.providers,
			cache=self.cache,
			history=self.history,
			weights=self.settings.PROVIDER_WEIGHTS,
			default_weight=self.settings.DEFAULT_PROVIDER_WEIGHT,
			outlier_threshold=self.settings.OUTLIER_THRESHOLD,
			cache_ttl=timedelta(seconds=self.settings.RATE_CACHE_TTL_SECONDS),
			valid_for=timedelta(seconds=self.settings.VALID_UNTIL_OFFSET_SECONDS),
			monitored_pairs=pairs,
		)
		self.staleness_monitor = StalenessMonitor(
			self.rate_aggregator,
			threshold=timedelta(seconds=self.settings.STALENESS_THRESHOLD_SECONDS),
		)

		logger.info(
			f'Rate aggregator created with {len(self.providers)} providers, '
			f'monitoring {[p.key for p in pairs]}'
		)
		return self.rate_aggregator

	async def check_connections(self) -> dict[str, bool]:
		"""Reachability of the history store and the rate cache."""
		checks = {}
		for name, ping in (('database', self.db.ping), ('cache', self.cache.ping)):
			try:
				checks[name] = await ping()
			except Exception as e:
				logger.warning(f'{name} health check failed: {e}')
				checks[name] = False
		return checks

	async def cleanup(self) -> None:
		for provider in self.providers:
			await provider.close()
		await self.redis_client.aclose()
		await self.db.close()
		logger.info('Services cleaned up successfully')
