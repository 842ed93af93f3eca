"""Pure aggregation math over provider quotes.

None of these functions perform I/O; the aggregator service feeds them the
successful quotes of one cycle and persists what they produce.
"""

import logging
from collections.abc import Mapping, Sequence
from decimal import Decimal
from statistics import median as _median

from domain.models.rate import ProviderQuote

logger = logging.getLogger(__name__)

DEFAULT_OUTLIER_THRESHOLD = Decimal("0.05")
DEFAULT_PROVIDER_WEIGHT = Decimal("0.1")

HIGH_SPREAD_PERCENT = Decimal("5.0")
MODERATE_SPREAD_PERCENT = Decimal("1.0")
HIGH_SPREAD_PENALTY = Decimal("0.5")
MODERATE_SPREAD_PENALTY = Decimal("0.8")


def median(values: Sequence[Decimal]) -> Decimal:
	if not values:
		raise ValueError("median of an empty sequence")
	return Decimal(_median(values))


def filter_outliers(
	quotes: Sequence[ProviderQuote], threshold: Decimal = DEFAULT_OUTLIER_THRESHOLD
) -> list[ProviderQuote]:
	"""Drop quotes deviating from the median by more than ``threshold`` (a fraction).

	With fewer than three quotes there is no reliable signal, so everything is kept.
	"""
	if len(quotes) < 3:
		return list(quotes)

	mid = median([q.rate for q in quotes])
	if mid == 0:
		return list(quotes)

	valid = []
	for quote in quotes:
		deviation = abs(quote.rate - mid) / mid
		if deviation > threshold:
			logger.warning(
				f'Outlier: {quote.provider} rate {quote.rate} deviates '
				f'{deviation * 100:.2f}% from median {mid}'
			)
			continue
		valid.append(quote)
	return valid


def calculate_spread(quotes: Sequence[ProviderQuote]) -> Decimal:
	"""Relative distance between highest and lowest quote, in percent of the lowest."""
	if len(quotes) < 2:
		return Decimal(0)
	rates = [q.rate for q in quotes]
	low, high = min(rates), max(rates)
	if low == 0:
		return Decimal(0)
	return (high - low) / low * 100


def weighted_average(
	quotes: Sequence[ProviderQuote],
	weights: Mapping[str, Decimal],
	default_weight: Decimal = DEFAULT_PROVIDER_WEIGHT,
) -> Decimal:
	weighted_sum = Decimal(0)
	total_weight = Decimal(0)
	for quote in quotes:
		weight = weights.get(quote.provider, default_weight)
		weighted_sum += quote.rate * weight
		total_weight += weight
	if total_weight <= 0:
		return Decimal(0)
	return weighted_sum / total_weight


def calculate_confidence(valid_count: int, total_providers: int, spread_percent: Decimal) -> Decimal:
	"""Share of registered providers that survived filtering, penalised by spread.

	The denominator is the number of configured providers, so a provider that
	errored out still lowers the score.
	"""
	if total_providers <= 0:
		return Decimal(0)

	score = Decimal(valid_count) / Decimal(total_providers)
	if spread_percent > HIGH_SPREAD_PERCENT:
		score *= HIGH_SPREAD_PENALTY
	elif spread_percent > MODERATE_SPREAD_PERCENT:
		score *= MODERATE_SPREAD_PENALTY

	return min(max(score, Decimal(0)), Decimal(1))
