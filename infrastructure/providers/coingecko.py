from decimal import Decimal

import httpx

from domain.exceptions.rate import ProviderError
from domain.models.rate import CurrencyPair
from infrastructure.providers.base import BaseRateProvider

COIN_IDS = {
	'BTC': 'bitcoin',
	'ETH': 'ethereum',
	'USDC': 'usd-coin',
	'USDT': 'tether',
	'XLM': 'stellar',
	'SOL': 'solana',
}


class CoinGeckoProvider(BaseRateProvider):
	BASE_URL = 'https://api.coingecko.com/api/v3'

	def __init__(self, api_key: str = '', client: httpx.AsyncClient | None = None, timeout: float = 10):
		self.api_key = api_key
		headers = {'x-cg-demo-api-key': api_key} if api_key else None
		super().__init__(client=client, timeout=timeout, headers=headers)

	@property
	def name(self) -> str:
		return 'coingecko'

	async def fetch_rate(self, pair_key: str) -> Decimal:
		pair = CurrencyPair.parse(pair_key)
		coin_id = COIN_IDS.get(pair.crypto)
		if coin_id is None:
			raise ProviderError(f'CoinGecko has no coin id for {pair.crypto}')

		vs_currency = pair.fiat.lower()
		data = await self._request('simple/price', {'ids': coin_id, 'vs_currencies': vs_currency})

		try:
			price = data[coin_id][vs_currency]
		except (KeyError, TypeError) as e:
			raise ProviderError(f'Missing rate for {pair.key}') from e
		return self._to_rate(price, pair.key)
