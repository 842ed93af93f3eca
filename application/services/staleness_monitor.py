import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from application.services.rate_aggregator import RateAggregatorService, utc_now
from domain.models.rate import CurrencyPair

logger = logging.getLogger(__name__)

# A pair that never refreshed is reported as last updated at the epoch.
NEVER = datetime.fromtimestamp(0, UTC)


@dataclass(frozen=True)
class StaleRate:
	pair: CurrencyPair
	last_update: datetime
	age: timedelta


class StalenessMonitor:
	"""Alerts on monitored pairs whose last successful aggregation is too old.

	Purely observational: nothing is retried or mutated here.
	"""

	def __init__(
		self,
		aggregator: RateAggregatorService,
		pairs: Sequence[CurrencyPair] | None = None,
		threshold: timedelta = timedelta(minutes=2),
		clock: Callable[[], datetime] = utc_now,
	):
		self.aggregator = aggregator
		self.pairs = list(pairs) if pairs is not None else list(aggregator.monitored_pairs)
		self.threshold = threshold
		self.clock = clock

	def check(self) -> list[StaleRate]:
		now = self.clock()
		stale = []
		for pair in self.pairs:
			last_update = self.aggregator.last_success_at(pair) or NEVER
			age = now - last_update
			if age > self.threshold:
				logger.error(
					f'ALERT: Rate for {pair.key} is STALE! Last update: {last_update.isoformat()}'
				)
				stale.append(StaleRate(pair=pair, last_update=last_update, age=age))
		return stale

	def status(self) -> dict[str, dict]:
		now = self.clock()
		report = {}
		for pair in self.pairs:
			last_update = self.aggregator.last_success_at(pair)
			report[pair.key] = {
				'last_update': last_update,
				'stale': last_update is None or now - last_update > self.threshold,
			}
		return report
