from datetime import datetime
from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from api.dependencies import get_rate_aggregator
from api.schemas import ConversionResponse, HistoricalRateResponse, RateResponse
from application.services import RateAggregatorService
from domain.models.rate import RateSource, as_utc

router = APIRouter(prefix='/api', tags=['rates'])

CurrencyCode = Annotated[str, Path(min_length=2, max_length=10)]


@router.get(
	'/rates/{crypto}/{fiat}',
	response_model=RateResponse,
	status_code=status.HTTP_200_OK,
	summary='Get current aggregated rate',
)
async def get_current_rate(
	crypto: CurrencyCode,
	fiat: CurrencyCode,
	service: Annotated[RateAggregatorService, Depends(get_rate_aggregator)],
) -> RateResponse:
	crypto = crypto.upper()
	fiat = fiat.upper()
	rate = await service.get_rate(crypto, fiat)
	return RateResponse(crypto=crypto, fiat=fiat, rate=rate)


@router.get(
	'/rates/{crypto}/{fiat}/history',
	response_model=list[HistoricalRateResponse],
	status_code=status.HTTP_200_OK,
	summary='Get historical rates',
)
async def get_rate_history(
	crypto: CurrencyCode,
	fiat: CurrencyCode,
	start: Annotated[datetime, Query(description='Start of the range (inclusive)')],
	end: Annotated[datetime, Query(description='End of the range (inclusive)')],
	service: Annotated[RateAggregatorService, Depends(get_rate_aggregator)],
	source: Annotated[RateSource, Query()] = RateSource.AGGREGATED,
) -> list[HistoricalRateResponse]:
	start, end = as_utc(start), as_utc(end)
	if start > end:
		raise HTTPException(status_code=422, detail='start must not be after end')
	records = await service.get_historical_rates(crypto.upper(), fiat.upper(), start, end, source)
	return [HistoricalRateResponse.from_record(r) for r in records]


@router.get(
	'/convert/{crypto}/{fiat}/{amount}',
	response_model=ConversionResponse,
	status_code=status.HTTP_200_OK,
	summary='Convert a crypto amount to fiat',
)
async def convert_amount(
	crypto: CurrencyCode,
	fiat: CurrencyCode,
	amount: Annotated[Decimal, Path(gt=0)],
	service: Annotated[RateAggregatorService, Depends(get_rate_aggregator)],
) -> ConversionResponse:
	crypto = crypto.upper()
	fiat = fiat.upper()
	converted, rate = await service.convert_with_rate(amount, crypto, fiat)
	return ConversionResponse(
		crypto=crypto, fiat=fiat, amount=amount, converted_amount=converted, rate=rate
	)
