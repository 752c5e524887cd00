"""Data Sources.

Where instrument snapshots come from: a remote screening API over HTTP, or
an in-memory collection (fixtures, files, tests). Both satisfy DataSource.
"""

import logging
from dataclasses import replace
from typing import Any, Iterable, Optional, Protocol

import httpx

from src.resilience import MaxRetriesExceeded, RetryConfig, call_with_retry
from src.screener.engine import ScreenerEngine
from src.screener.exceptions import DataSourceError, MalformedInstrumentError
from src.screener.export import export_bytes
from src.screener.models import FilterCriteria, Instrument, criteria_params

logger = logging.getLogger(__name__)


class DataSource(Protocol):
    """Async access to the instrument universe."""

    async def list_instruments(self) -> list[Instrument]:
        ...

    async def list_sectors(self) -> list[str]:
        ...

    async def trigger_refresh(self) -> None:
        ...

    async def export_filtered(self, criteria: FilterCriteria) -> bytes:
        ...


def parse_instruments(payload: Any) -> list[Instrument]:
    """Parse `{"stocks": [...]}` or a bare list.

    Raises:
        DataSourceError: the payload is not a list of records.
        MalformedInstrumentError: a record breaks the Instrument contract.
    """
    if isinstance(payload, dict):
        payload = payload.get("stocks", [])
    if not isinstance(payload, list):
        raise DataSourceError(f"Expected a list of instruments, got {type(payload).__name__}")

    instruments = []
    for row in payload:
        try:
            instruments.append(Instrument.from_api(row))
        except MalformedInstrumentError as e:
            logger.error("Rejecting payload with malformed instrument %s: %s", e.symbol or "?", e)
            raise
    return instruments


class _ServerError(Exception):
    """5xx response, eligible for retry."""

    def __init__(self, response: httpx.Response):
        self.response = response
        super().__init__(f"HTTP {response.status_code} from {response.request.url}")


# =============================================================================
# HTTP Data Source
# =============================================================================


class HttpDataSource:
    """Screening API client.

    Transport failures and 5xx responses are retried with backoff; 4xx
    responses and exhausted retries raise DataSourceError.

    Example:
        async with HttpDataSource("http://localhost:8080/api") as source:
            instruments = await source.list_instruments()
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        retry_config: Optional[RetryConfig] = None,
        instrument_page_size: int = 10000,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.instrument_page_size = instrument_page_size
        self.retry_config = replace(
            retry_config or RetryConfig(),
            retryable_exceptions=(httpx.TransportError, _ServerError),
        )
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    @classmethod
    def from_settings(cls, settings) -> "HttpDataSource":
        return cls(
            base_url=settings.data_source_url,
            timeout=settings.request_timeout,
            retry_config=RetryConfig(
                max_retries=settings.max_retries,
                base_delay=settings.retry_base_delay,
                max_delay=settings.retry_max_delay,
            ),
            instrument_page_size=settings.instrument_page_size,
        )

    async def __aenter__(self) -> "HttpDataSource":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def _send(self, method: str, path: str, params: Optional[dict] = None) -> httpx.Response:
        response = await self._client.request(method, path, params=params)
        if response.status_code >= 500:
            raise _ServerError(response)
        return response

    async def _request(self, method: str, path: str, params: Optional[dict] = None) -> httpx.Response:
        try:
            response = await call_with_retry(
                self._send, method, path, params, config=self.retry_config,
            )
        except MaxRetriesExceeded as e:
            last = e.last_exception
            status = last.response.status_code if isinstance(last, _ServerError) else None
            raise DataSourceError(
                f"{method} {path} failed after {e.attempts} attempt(s): {last}",
                status_code=status,
            ) from last
        if response.status_code >= 400:
            raise DataSourceError(
                f"{method} {path} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return response

    def _json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise DataSourceError(f"Invalid JSON from {response.request.url}: {e}") from e

    async def list_instruments(self) -> list[Instrument]:
        response = await self._request(
            "GET", "/stocks", params={"page": "1", "pageSize": str(self.instrument_page_size)},
        )
        instruments = parse_instruments(self._json(response))
        logger.info("Fetched %d instruments from %s", len(instruments), self.base_url)
        return instruments

    async def list_sectors(self) -> list[str]:
        payload = self._json(await self._request("GET", "/sectors"))
        if isinstance(payload, dict):
            payload = payload.get("sectors", [])
        if not isinstance(payload, list):
            raise DataSourceError(f"Expected a list of sectors, got {type(payload).__name__}")
        return [str(s) for s in payload]

    async def trigger_refresh(self) -> None:
        await self._request("POST", "/refresh")
        logger.info("Requested data refresh from %s", self.base_url)

    async def export_filtered(self, criteria: FilterCriteria) -> bytes:
        response = await self._request("GET", "/export", params=criteria_params(criteria))
        return response.content


# =============================================================================
# In-Memory Data Source
# =============================================================================


class StaticDataSource:
    """Fixed snapshot served as a DataSource.

    Export runs the same filter and CSV writer the HTTP service uses, so
    the bytes match what the remote endpoint would return.
    """

    def __init__(
        self,
        instruments: Iterable[Instrument],
        sectors: Optional[Iterable[str]] = None,
        engine: Optional[ScreenerEngine] = None,
    ):
        self.instruments = list(instruments)
        self.sectors = (
            list(sectors) if sectors is not None
            else sorted({i.sector for i in self.instruments if i.sector})
        )
        self.engine = engine or ScreenerEngine()
        self.refresh_count = 0

    async def list_instruments(self) -> list[Instrument]:
        return list(self.instruments)

    async def list_sectors(self) -> list[str]:
        return list(self.sectors)

    async def trigger_refresh(self) -> None:
        self.refresh_count += 1

    async def export_filtered(self, criteria: FilterCriteria) -> bytes:
        return export_bytes(self.engine.filter_for_export(self.instruments, criteria))
