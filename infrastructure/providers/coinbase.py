from decimal import Decimal

import httpx

from domain.exceptions.rate import ProviderError
from domain.models.rate import CurrencyPair
from infrastructure.providers.base import BaseRateProvider


class CoinbaseProvider(BaseRateProvider):
	BASE_URL = 'https://api.coinbase.com/v2'

	def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 10):
		super().__init__(client=client, timeout=timeout)

	@property
	def name(self) -> str:
		return 'coinbase'

	async def fetch_rate(self, pair_key: str) -> Decimal:
		pair = CurrencyPair.parse(pair_key)
		data = await self._request(f'prices/{pair.crypto}-{pair.fiat}/spot')

		if data.get('errors'):
			message = data['errors'][0].get('message', 'Unknown error')
			raise ProviderError(f'Coinbase API error: {message}')

		try:
			amount = data['data']['amount']
		except (KeyError, TypeError) as e:
			raise ProviderError(f'Missing spot price for {pair.key}') from e
		return self._to_rate(amount, pair.key)
