# nosec B101


from decimal import Decimal

import pytest
from pydantic import ValidationError

from config.settings import Settings


def test_defaults_match_aggregation_constants():
    settings = Settings(_env_file=None)

    assert settings.PROVIDER_WEIGHTS == {
        'coinbase': Decimal('0.4'),
        'binance': Decimal('0.4'),
        'coingecko': Decimal('0.2'),
    }
    assert settings.DEFAULT_PROVIDER_WEIGHT == Decimal('0.1')
    assert settings.RATE_CACHE_TTL_SECONDS < settings.VALID_UNTIL_OFFSET_SECONDS
    assert settings.monitored_pair_keys == ['BTC-USD', 'ETH-USD']


def test_monitored_pairs_from_env(monkeypatch):
    monkeypatch.setenv('MONITORED_PAIRS', 'btc-eur, ,xlm-usd')

    assert Settings(_env_file=None).monitored_pair_keys == ['BTC-EUR', 'XLM-USD']


def test_provider_weights_from_json_env(monkeypatch):
    monkeypatch.setenv('PROVIDER_WEIGHTS', '{"Coinbase": "0.7", "kraken": "0.3"}')

    settings = Settings(_env_file=None)

    assert settings.PROVIDER_WEIGHTS == {'coinbase': Decimal('0.7'), 'kraken': Decimal('0.3')}


def test_cache_ttl_must_be_shorter_than_validity():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, RATE_CACHE_TTL_SECONDS=120, VALID_UNTIL_OFFSET_SECONDS=90)


def test_negative_weight_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, PROVIDER_WEIGHTS={'coinbase': -1})
