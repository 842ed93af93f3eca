import asyncio
import logging
import signal
from collections.abc import Awaitable, Callable
from datetime import datetime

from application.services import RateAggregatorService, StalenessMonitor
from application.services.service_factory import ServiceFactory
from config.logger import setup_logging
from config.settings import get_settings

logger = logging.getLogger(__name__)


class RateRefreshWorker:
    """
    Background worker delivering the two periodic ticks.

    The refresh tick keeps the cache warm and the staleness clock moving even
    with no caller traffic; the staleness tick only reports.
    """

    def __init__(
        self,
        rate_aggregator: RateAggregatorService,
        staleness_monitor: StalenessMonitor,
        refresh_interval: float = 60,
        staleness_interval: float = 300,
    ):
        """
        Args:
            rate_aggregator: Service refreshing every monitored pair
            staleness_monitor: Monitor alerting on pairs that stopped refreshing
            refresh_interval: Seconds between refresh ticks (default: 60)
            staleness_interval: Seconds between staleness checks (default: 300)
        """
        self.rate_aggregator = rate_aggregator
        self.staleness_monitor = staleness_monitor
        self.refresh_interval = refresh_interval
        self.staleness_interval = staleness_interval
        self.is_running = False
        self._stop_event = asyncio.Event()

    async def refresh_tick(self) -> dict[str, bool]:
        cycle_start = datetime.now()
        results = await self.rate_aggregator.refresh_monitored_pairs()
        cycle_duration = (datetime.now() - cycle_start).total_seconds()
        logger.info(
            f"Refresh cycle completed in {cycle_duration:.2f}s: "
            f"{sum(results.values())}/{len(results)} pairs updated"
        )
        return results

    async def staleness_tick(self) -> None:
        stale = self.staleness_monitor.check()
        if not stale:
            logger.debug("All monitored pairs are fresh")

    async def _loop(self, name: str, tick: Callable[[], Awaitable], interval: float) -> None:
        while self.is_running:
            try:
                await tick()
            except asyncio.CancelledError:
                logger.info(f"{name} loop received cancellation signal")
                raise
            except Exception as e:
                logger.critical(f"{name} tick failed: {e}", exc_info=True)

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
            except TimeoutError:
                continue

    async def run(self) -> None:
        """
        Main worker loop. Runs both ticks until stopped.
        """
        self.is_running = True
        self._stop_event.clear()
        logger.info(
            f"Rate refresh worker started (refresh every {self.refresh_interval}s, "
            f"staleness check every {self.staleness_interval}s)"
        )

        await asyncio.gather(
            self._loop("refresh", self.refresh_tick, self.refresh_interval),
            self._loop("staleness", self.staleness_tick, self.staleness_interval),
        )

        logger.info("Rate refresh worker stopped")

    def stop(self) -> None:
        """Gracefully stop the worker"""
        logger.info("Stopping rate refresh worker...")
        self.is_running = False
        self._stop_event.set()


async def main():
    """Entry point for running the worker on its own."""
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_JSON)

    service_factory = ServiceFactory(settings)
    logger.info("Initializing services...")
    await service_factory.create_rate_aggregator()

    worker = RateRefreshWorker(
        rate_aggregator=service_factory.rate_aggregator,
        staleness_monitor=service_factory.staleness_monitor,
        refresh_interval=settings.REFRESH_INTERVAL_SECONDS,
        staleness_interval=settings.STALENESS_CHECK_INTERVAL_SECONDS,
    )

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, worker.stop)

    try:
        await worker.run()
    finally:
        await service_factory.cleanup()
        logger.info("Cleanup completed")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
