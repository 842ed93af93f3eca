import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from domain.exceptions.rate import InvalidCurrencyPairError, RateUnavailableError

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
	@app.exception_handler(InvalidCurrencyPairError)
	async def invalid_pair_handler(request: Request, exc: InvalidCurrencyPairError):
		return JSONResponse(status_code=400, content={'detail': str(exc)})

	@app.exception_handler(RateUnavailableError)
	async def rate_unavailable_handler(request: Request, exc: RateUnavailableError):
		logger.error(f'Rate unavailable: {exc}')
		return JSONResponse(status_code=503, content={'detail': 'Exchange rate service unavailable'})
