from datetime import datetime
from decimal import Decimal

from sqlalchemy import DECIMAL, JSON, DateTime, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
	pass


class ExchangeRateDB(Base):
	__tablename__ = 'exchange_rates'

	id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
	crypto_currency: Mapped[str] = mapped_column(String(20), nullable=False)
	fiat_currency: Mapped[str] = mapped_column(String(10), nullable=False)
	source: Mapped[str] = mapped_column(String(20), nullable=False)
	rate: Mapped[Decimal] = mapped_column(DECIMAL(precision=24, scale=10), nullable=False)
	bid: Mapped[Decimal | None] = mapped_column(DECIMAL(precision=24, scale=10), nullable=True)
	ask: Mapped[Decimal | None] = mapped_column(DECIMAL(precision=24, scale=10), nullable=True)
	spread_percent: Mapped[Decimal | None] = mapped_column(DECIMAL(precision=10, scale=4), nullable=True)
	# Only meaningful for aggregated rows
	confidence_score: Mapped[Decimal | None] = mapped_column(DECIMAL(precision=5, scale=4), nullable=True)
	provider_breakdown: Mapped[dict | None] = mapped_column(JSON, nullable=True)
	valid_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
	created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

	__table_args__ = (
		Index('idx_exchange_rates_pair_timestamp', 'crypto_currency', 'fiat_currency', 'created_at'),
		Index('idx_exchange_rates_source_pair', 'source', 'crypto_currency', 'fiat_currency'),
	)
