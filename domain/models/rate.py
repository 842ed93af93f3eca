from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum

from domain.exceptions.rate import InvalidCurrencyPairError


def as_utc(dt: datetime | None) -> datetime | None:
    """Naive datetimes are taken to be UTC already; aware ones are converted."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


class RateSource(str, Enum):
    COINBASE = "coinbase"
    BINANCE = "binance"
    COINGECKO = "coingecko"
    AGGREGATED = "aggregated"

    @classmethod
    def for_provider(cls, provider_name: str) -> "RateSource":
        """Unknown providers are recorded under the aggregated source."""
        try:
            return cls(provider_name.lower())
        except ValueError:
            return cls.AGGREGATED


@dataclass(frozen=True)
class CurrencyPair:
    crypto: str
    fiat: str

    def __post_init__(self):
        if not self.crypto or not self.fiat:
            raise InvalidCurrencyPairError("Both crypto and fiat codes are required")
        object.__setattr__(self, "crypto", self.crypto.upper())
        object.__setattr__(self, "fiat", self.fiat.upper())

    @property
    def key(self) -> str:
        return f"{self.crypto}-{self.fiat}"

    @classmethod
    def parse(cls, key: str) -> "CurrencyPair":
        crypto, sep, fiat = key.strip().partition("-")
        if not sep:
            raise InvalidCurrencyPairError(f"Invalid currency pair {key!r}, expected CRYPTO-FIAT")
        return cls(crypto=crypto, fiat=fiat)

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class ProviderQuote:
    provider: str
    rate: Decimal


@dataclass(frozen=True)
class RateQuote:
    pair: CurrencyPair
    source: RateSource
    rate: Decimal
    observed_at: datetime
    valid_until: datetime


@dataclass(frozen=True)
class AggregatedRate:
    pair: CurrencyPair
    rate: Decimal  # Weighted consensus of the surviving quotes
    bid: Decimal
    ask: Decimal
    spread_percent: Decimal
    confidence_score: Decimal
    provider_breakdown: dict[str, Decimal]  # Every successful quote, outliers included
    created_at: datetime
    valid_until: datetime

    def is_stale(self, now: datetime) -> bool:
        return now > self.valid_until


@dataclass(frozen=True)
class RateRecord:
    pair: CurrencyPair
    source: RateSource
    rate: Decimal
    created_at: datetime
    valid_until: datetime | None = None
    bid: Decimal | None = None
    ask: Decimal | None = None
    spread_percent: Decimal | None = None
    confidence_score: Decimal | None = None
    provider_breakdown: dict[str, Decimal] | None = field(default=None)
