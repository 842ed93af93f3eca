class RateException(Exception):
	pass


class InvalidCurrencyPairError(RateException):
	pass


class ProviderError(RateException):
	pass


class CacheError(RateException):
	pass


class RateUnavailableError(RateException):
	"""Every provider failed and no aggregated rate was ever persisted for the pair."""
