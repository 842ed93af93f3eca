from .base import BaseRateProvider, RateProvider
from .binance import BinanceProvider
from .coinbase import CoinbaseProvider
from .coingecko import CoinGeckoProvider

__all__ = ['RateProvider', 'BaseRateProvider', 'BinanceProvider', 'CoinbaseProvider', 'CoinGeckoProvider']
