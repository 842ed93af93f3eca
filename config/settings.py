from decimal import Decimal
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
	DATABASE_URL: str = 'sqlite+aiosqlite:///./rate_aggregator.db'

	REDIS_URL: str = 'redis://localhost:6379'

	COINGECKO_API_KEY: str = ''
	PROVIDER_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)

	# Aggregation
	PROVIDER_WEIGHTS: dict[str, Decimal] = {
		'coinbase': Decimal('0.4'),
		'binance': Decimal('0.4'),
		'coingecko': Decimal('0.2'),
	}
	DEFAULT_PROVIDER_WEIGHT: Decimal = Field(default=Decimal('0.1'), ge=0)
	OUTLIER_THRESHOLD: Decimal = Field(default=Decimal('0.05'), gt=0)

	RATE_CACHE_TTL_SECONDS: int = Field(default=60, gt=0)
	VALID_UNTIL_OFFSET_SECONDS: int = Field(default=90, gt=0)

	# Scheduling
	MONITORED_PAIRS: str = 'BTC-USD,ETH-USD'
	SCHEDULER_ENABLED: bool = True
	REFRESH_INTERVAL_SECONDS: int = Field(default=60, gt=0)
	STALENESS_CHECK_INTERVAL_SECONDS: int = Field(default=300, gt=0)
	STALENESS_THRESHOLD_SECONDS: int = Field(default=120, gt=0)

	# Application
	APP_NAME: str = 'Crypto Rate Aggregator'
	DEBUG: bool = True
	LOG_LEVEL: str = 'INFO'
	LOG_JSON: bool = False

	model_config = SettingsConfigDict(env_file='.env', case_sensitive=False, extra='ignore')

	@field_validator('PROVIDER_WEIGHTS')
	@classmethod
	def weights_non_negative(cls, v: dict[str, Decimal]):
		for name, weight in v.items():
			if weight < 0:
				raise ValueError(f'Weight for {name} must not be negative')
		return {name.lower(): weight for name, weight in v.items()}

	@model_validator(mode='after')
	def cache_ttl_shorter_than_validity(self):
		if self.RATE_CACHE_TTL_SECONDS >= self.VALID_UNTIL_OFFSET_SECONDS:
			raise ValueError('RATE_CACHE_TTL_SECONDS must be shorter than VALID_UNTIL_OFFSET_SECONDS')
		return self

	@property
	def monitored_pair_keys(self) -> list[str]:
		return [p.strip().upper() for p in self.MONITORED_PAIRS.split(',') if p.strip()]


@lru_cache
def get_settings() -> Settings:
	return Settings()
