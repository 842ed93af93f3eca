from datetime import datetime
from decimal import Decimal

from sqlalchemy.future import select

from domain.models.rate import AggregatedRate, CurrencyPair, RateQuote, RateRecord, RateSource, as_utc
from infrastructure.persistence.database import Database
from infrastructure.persistence.models.rate import ExchangeRateDB


class RateHistoryRepository:
	"""Append-only history of provider quotes and aggregated rates."""

	def __init__(self, db: Database):
		self.db = db

	async def save_quotes(self, quotes: list[RateQuote]) -> None:
		if not quotes:
			return
		async with self.db.session() as session:
			session.add_all(
				[
					ExchangeRateDB(
						crypto_currency=q.pair.crypto,
						fiat_currency=q.pair.fiat,
						source=q.source.value,
						rate=q.rate,
						valid_until=as_utc(q.valid_until),
						created_at=as_utc(q.observed_at),
					)
					for q in quotes
				]
			)

	async def save_aggregate(self, aggregate: AggregatedRate) -> None:
		async with self.db.session() as session:
			session.add(
				ExchangeRateDB(
					crypto_currency=aggregate.pair.crypto,
					fiat_currency=aggregate.pair.fiat,
					source=RateSource.AGGREGATED.value,
					rate=aggregate.rate,
					bid=aggregate.bid,
					ask=aggregate.ask,
					spread_percent=aggregate.spread_percent,
					confidence_score=aggregate.confidence_score,
					provider_breakdown={k: str(v) for k, v in aggregate.provider_breakdown.items()},
					valid_until=as_utc(aggregate.valid_until),
					created_at=as_utc(aggregate.created_at),
				)
			)

	async def find_latest(
		self, pair: CurrencyPair, source: RateSource = RateSource.AGGREGATED
	) -> RateRecord | None:
		stmt = (
			select(ExchangeRateDB)
			.filter(
				ExchangeRateDB.crypto_currency == pair.crypto,
				ExchangeRateDB.fiat_currency == pair.fiat,
				ExchangeRateDB.source == source.value,
			)
			.order_by(ExchangeRateDB.created_at.desc(), ExchangeRateDB.id.desc())
			.limit(1)
		)
		async with self.db.session() as session:
			row = (await session.execute(stmt)).scalars().first()
			return self._to_record(row) if row else None

	async def find_range(
		self, pair: CurrencyPair, source: RateSource, start: datetime, end: datetime
	) -> list[RateRecord]:
		stmt = (
			select(ExchangeRateDB)
			.filter(
				ExchangeRateDB.crypto_currency == pair.crypto,
				ExchangeRateDB.fiat_currency == pair.fiat,
				ExchangeRateDB.source == source.value,
				ExchangeRateDB.created_at >= as_utc(start),
				ExchangeRateDB.created_at <= as_utc(end),
			)
			.order_by(ExchangeRateDB.created_at.asc(), ExchangeRateDB.id.asc())
		)
		async with self.db.session() as session:
			rows = (await session.execute(stmt)).scalars().all()
			return [self._to_record(r) for r in rows]

	@staticmethod
	def _to_record(row: ExchangeRateDB) -> RateRecord:
		breakdown = None
		if row.provider_breakdown is not None:
			breakdown = {k: Decimal(v) for k, v in row.provider_breakdown.items()}
		# SQLite hands back naive datetimes; everything is stored in UTC.
		return RateRecord(
			pair=CurrencyPair(crypto=row.crypto_currency, fiat=row.fiat_currency),
			source=RateSource(row.source),
			rate=row.rate,
			bid=row.bid,
			ask=row.ask,
			spread_percent=row.spread_percent,
			confidence_score=row.confidence_score,
			provider_breakdown=breakdown,
			valid_until=as_utc(row.valid_until),
			created_at=as_utc(row.created_at),
		)
