from decimal import Decimal

import httpx

from domain.exceptions.rate import ProviderError
from domain.models.rate import CurrencyPair
from infrastructure.providers.base import BaseRateProvider

# Binance has no USD order books for most assets; USDT is the dollar proxy.
FIAT_QUOTE_ASSETS = {'USD': 'USDT'}


class BinanceProvider(BaseRateProvider):
	BASE_URL = 'https://api.binance.com/api/v3'

	def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 10):
		super().__init__(client=client, timeout=timeout)

	@property
	def name(self) -> str:
		return 'binance'

	@staticmethod
	def symbol_for(pair: CurrencyPair) -> str:
		return f'{pair.crypto}{FIAT_QUOTE_ASSETS.get(pair.fiat, pair.fiat)}'

	async def fetch_rate(self, pair_key: str) -> Decimal:
		pair = CurrencyPair.parse(pair_key)
		data = await self._request('ticker/price', {'symbol': self.symbol_for(pair)})

		if 'msg' in data:
			raise ProviderError(f'Binance API error: {data["msg"]}')

		try:
			price = data['price']
		except (KeyError, TypeError) as e:
			raise ProviderError(f'Missing price for {pair.key}') from e
		return self._to_rate(price, pair.key)
