from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from domain.models.rate import RateRecord, RateSource


class RateResponse(BaseModel):
	crypto: str = Field(..., description='Crypto currency code')
	fiat: str = Field(..., description='Fiat currency code')
	rate: Decimal = Field(..., description='Aggregated exchange rate')

	model_config = ConfigDict(json_schema_extra={'example': {'crypto': 'BTC', 'fiat': 'USD', 'rate': 50002.0}})


class ConversionResponse(BaseModel):
	crypto: str = Field(..., description='Crypto currency code')
	fiat: str = Field(..., description='Fiat currency code')
	amount: Decimal = Field(..., description='Amount of crypto requested')
	converted_amount: Decimal = Field(..., description='Amount in fiat')
	rate: Decimal = Field(..., description='Aggregated rate used for the conversion')

	model_config = ConfigDict(
		json_schema_extra={
			'example': {'crypto': 'BTC', 'fiat': 'USD', 'amount': 0.5, 'converted_amount': 25001.0, 'rate': 50002.0}
		}
	)


class HistoricalRateResponse(BaseModel):
	crypto: str
	fiat: str
	source: RateSource
	rate: Decimal
	bid: Decimal | None = None
	ask: Decimal | None = None
	spread_percent: Decimal | None = None
	confidence_score: Decimal | None = Field(None, description='0-1, aggregated rows only')
	provider_breakdown: dict[str, Decimal] | None = None
	valid_until: datetime | None = None
	created_at: datetime

	@classmethod
	def from_record(cls, record: RateRecord) -> 'HistoricalRateResponse':
		return cls(
			crypto=record.pair.crypto,
			fiat=record.pair.fiat,
			source=record.source,
			rate=record.rate,
			bid=record.bid,
			ask=record.ask,
			spread_percent=record.spread_percent,
			confidence_score=record.confidence_score,
			provider_breakdown=record.provider_breakdown,
			valid_until=record.valid_until,
			created_at=record.created_at,
		)


class PairHealth(BaseModel):
	last_update: datetime | None = Field(None, description='Last successful aggregation')
	stale: bool


class HealthResponse(BaseModel):
	status: str = Field(..., description='healthy or degraded')
	pairs: dict[str, PairHealth]
	services: dict[str, bool] = Field(default_factory=dict, description='Reachability of database and cache')
