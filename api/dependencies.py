import logging

from application.services import RateAggregatorService, StalenessMonitor
from application.services.service_factory import ServiceFactory
from config.settings import get_settings

logger = logging.getLogger(__name__)


class AppDependencies:
	"""Container for application-wide singleton dependencies."""

	factory: ServiceFactory | None = None


deps = AppDependencies()


async def init_dependencies() -> None:
	"""Initialize all singleton dependencies. Called at app startup."""
	logger.info('Initializing dependencies...')
	deps.factory = ServiceFactory(get_settings())
	await deps.factory.create_rate_aggregator()
	logger.info('Dependencies initialized')


async def cleanup_dependencies() -> None:
	logger.info('Cleaning up dependencies...')
	if deps.factory:
		await deps.factory.cleanup()
		deps.factory = None
	logger.info('Cleanup complete')


def get_rate_aggregator() -> RateAggregatorService:
	if deps.factory is None or deps.factory.rate_aggregator is None:
		raise RuntimeError('Rate aggregator not initialized')
	return deps.factory.rate_aggregator


def get_staleness_monitor() -> StalenessMonitor:
	if deps.factory is None or deps.factory.staleness_monitor is None:
		raise RuntimeError('Staleness monitor not initialized')
	return deps.factory.staleness_monitor


def get_service_factory() -> ServiceFactory:
	if deps.factory is None:
		raise RuntimeError('Services not initialized')
	return deps.factory
