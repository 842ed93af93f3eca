# nosec B101


from decimal import Decimal
from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from domain.exceptions.rate import ProviderError
from infrastructure.providers.coingecko import CoinGeckoProvider


def json_response(payload):
    response = Mock()
    response.json.return_value = payload
    response.raise_for_status = Mock()
    return response


@pytest.mark.asyncio
async def test_fetch_rate_success():
    mock_client = AsyncMock(spec=httpx.AsyncClient)
    mock_client.get.return_value = json_response({'bitcoin': {'usd': 49990}})

    provider = CoinGeckoProvider(client=mock_client)
    rate = await provider.fetch_rate('BTC-USD')

    assert rate == Decimal('49990')
    call_args = mock_client.get.call_args
    assert call_args[0][0] == 'https://api.coingecko.com/api/v3/simple/price'
    assert call_args[1]['params'] == {'ids': 'bitcoin', 'vs_currencies': 'usd'}


@pytest.mark.asyncio
async def test_fetch_rate_float_payload_keeps_decimal_text():
    mock_client = AsyncMock(spec=httpx.AsyncClient)
    mock_client.get.return_value = json_response({'ethereum': {'eur': 2875.31}})

    provider = CoinGeckoProvider(client=mock_client)

    assert await provider.fetch_rate('ETH-EUR') == Decimal('2875.31')


@pytest.mark.asyncio
async def test_fetch_rate_unknown_coin_fails_without_request():
    mock_client = AsyncMock(spec=httpx.AsyncClient)

    provider = CoinGeckoProvider(client=mock_client)

    with pytest.raises(ProviderError) as exc_info:
        await provider.fetch_rate('DOGE-USD')

    assert 'no coin id for DOGE' in str(exc_info.value)
    mock_client.get.assert_not_called()


@pytest.mark.asyncio
async def test_fetch_rate_missing_fiat():
    mock_client = AsyncMock(spec=httpx.AsyncClient)
    mock_client.get.return_value = json_response({'bitcoin': {}})

    provider = CoinGeckoProvider(client=mock_client)

    with pytest.raises(ProviderError) as exc_info:
        await provider.fetch_rate('BTC-NGN')

    assert 'Missing rate for BTC-NGN' in str(exc_info.value)


def test_api_key_sent_as_header():
    provider = CoinGeckoProvider(api_key='demo-key')

    assert provider._client.headers['x-cg-demo-api-key'] == 'demo-key'
