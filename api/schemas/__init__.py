from .responses import (
	ConversionResponse,
	HealthResponse,
	HistoricalRateResponse,
	PairHealth,
	RateResponse,
)

__all__ = [
	'ConversionResponse',
	'HealthResponse',
	'HistoricalRateResponse',
	'PairHealth',
	'RateResponse',
]
