import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api.dependencies import cleanup_dependencies, deps, init_dependencies
from api.error_handlers import register_exception_handlers
from api.routes import health, rates
from config.logger import setup_logging
from config.settings import get_settings
from workers.rate_refresher import RateRefreshWorker

logger = logging.getLogger(__name__)


settings = get_settings()
setup_logging(settings.LOG_LEVEL, settings.LOG_JSON)


@asynccontextmanager
async def lifespan(app: FastAPI):
	logger.info('Starting Crypto Rate Aggregator API...')

	await init_dependencies()

	worker = None
	worker_task = None
	if settings.SCHEDULER_ENABLED:
		worker = RateRefreshWorker(
			rate_aggregator=deps.factory.rate_aggregator,
			staleness_monitor=deps.factory.staleness_monitor,
			refresh_interval=settings.REFRESH_INTERVAL_SECONDS,
			staleness_interval=settings.STALENESS_CHECK_INTERVAL_SECONDS,
		)
		worker_task = asyncio.create_task(worker.run())

	logger.info('Application ready')

	yield

	logger.info('Shutting down...')
	if worker is not None:
		worker.stop()
		await worker_task
	await cleanup_dependencies()


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
	logger.error(f'Unhandled exception: {exc}', exc_info=True)
	return JSONResponse(status_code=500, content={'detail': 'Internal server error'})


app.include_router(rates.router)
app.include_router(health.router)
register_exception_handlers(app)
