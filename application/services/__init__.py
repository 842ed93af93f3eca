from .rate_aggregator import RateAggregatorService
from .staleness_monitor import StaleRate, StalenessMonitor

__all__ = ['RateAggregatorService', 'StaleRate', 'StalenessMonitor']
