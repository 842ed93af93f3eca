from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Any, Protocol, runtime_checkable

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from domain.exceptions.rate import ProviderError


@runtime_checkable
class RateProvider(Protocol):
    """A single price source: given a pair key such as ``BTC-USD``, return a rate or raise."""

    @property
    def name(self) -> str: ...

    async def fetch_rate(self, pair_key: str) -> Decimal: ...

    async def close(self) -> None: ...


class BaseRateProvider(ABC):
    """A base class for HTTP price sources, handling common request logic.

    The per-request timeout lives on the HTTP client; callers add none of their own.
    """

    BASE_URL = ""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10,
        headers: dict[str, str] | None = None,
    ):
        self.timeout = timeout
        default_headers = {"accept": "application/json"}
        if headers:
            default_headers.update(headers)
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers=default_headers,
            limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
        )

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    async def fetch_rate(self, pair_key: str) -> Decimal:
        ...

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, max=1),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _send(self, url: str, params: dict[str, Any]) -> httpx.Response:
        response = await self._client.get(url, params=params)
        response.raise_for_status()  # Raises HTTPStatusError for 4xx/5xx
        return response

    async def _request(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        url = f"{self.BASE_URL}/{endpoint}"
        try:
            response = await self._send(url, params or {})
            return response.json()
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                f"{self.name} HTTP error {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.RequestError as e:
            raise ProviderError(f"{self.name} request failed: {e.__class__.__name__}") from e
        except ValueError as e:
            raise ProviderError(f"{self.name} response parsing error: {e}") from e

    def _to_rate(self, value: Any, pair_key: str) -> Decimal:
        try:
            rate = Decimal(str(value))
        except (InvalidOperation, TypeError) as e:
            raise ProviderError(f"{self.name} returned a non-numeric rate for {pair_key}: {value!r}") from e
        if not rate.is_finite() or rate <= 0:
            raise ProviderError(f"{self.name} returned a non-positive rate for {pair_key}: {rate}")
        return rate

    async def close(self) -> None:
        """Cleanly close the HTTP client."""
        await self._client.aclose()
