import json
from datetime import UTC, datetime, timedelta
from decimal import Decimal, InvalidOperation

from redis import asyncio as redis

from domain.exceptions.rate import CacheError


class RedisCacheService:
    def __init__(self, redis_client: redis.Redis, rate_ttl: timedelta = timedelta(seconds=60)):
        self.redis = redis_client
        self.rate_ttl = rate_ttl

    def _make_rate_key(self, pair_key: str) -> str:
        return f"rate:{pair_key}"

    async def get_rate(self, pair_key: str) -> Decimal | None:
        data = await self.redis.get(self._make_rate_key(pair_key))

        if not data:
            return None

        try:
            rate_dict = json.loads(data)
            return Decimal(rate_dict["rate"])
        except (json.JSONDecodeError, KeyError, TypeError, InvalidOperation) as e:
            raise CacheError(f"Invalid json data cached for {pair_key}: {e}") from e

    async def set_rate(self, pair_key: str, rate: Decimal, ttl: timedelta | None = None) -> None:
        rate_dict = {
            "pair": pair_key,
            "rate": str(rate),
            "cached_at": datetime.now(UTC).isoformat(),
        }

        await self.redis.setex(self._make_rate_key(pair_key), ttl or self.rate_ttl, json.dumps(rate_dict))

    async def ping(self) -> bool:
        return bool(await self.redis.ping())
