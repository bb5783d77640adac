"""Entity API HTTP client for CRUD on the external entity backend"""

import time
from typing import Any, Dict, List, Optional

import httpx

from financial_shift.config import settings
from financial_shift.domain.exceptions import EntityAPIError
from financial_shift.infrastructure.observability.metrics import (
    entity_api_failures_counter,
    entity_api_latency_histogram,
)

Record = Dict[str, Any]


def _parse_retry_after(value: str | None) -> float | None:
    """Retry-After in delta-seconds form; HTTP-date values are ignored"""
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


class HttpEntityClient:
    """
    Client for the REST entity backend.

    Each entity lives under /entities/{name}. Every failure surfaces as
    EntityAPIError carrying the HTTP status (None for transport failures)
    so callers can decide whether to retry.
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.entity_api_base).rstrip("/")
        self.token = token if token is not None else settings.entity_api_token
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        started = time.perf_counter()
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=self._headers(),
            transport=self.transport,
        ) as client:
            try:
                response = await client.request(method, path, **kwargs)
                response.raise_for_status()
                return response

            except httpx.TimeoutException as e:
                entity_api_failures_counter.labels(error_class="retryable").inc()
                raise EntityAPIError(f"Entity API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                error = EntityAPIError(
                    f"Entity API error: {e.response.status_code} on {method} {path}",
                    status=e.response.status_code,
                    retry_after=_parse_retry_after(e.response.headers.get("Retry-After")),
                )
                entity_api_failures_counter.labels(error_class=error.error_class.value).inc()
                raise error from e
            except httpx.TransportError as e:
                entity_api_failures_counter.labels(error_class="retryable").inc()
                raise EntityAPIError(f"Entity API unreachable: {e}") from e
            finally:
                entity_api_latency_histogram.observe(time.perf_counter() - started)

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise EntityAPIError(f"Invalid JSON from entity API: {e}", status=response.status_code) from e

    async def list(
        self,
        entity: str,
        filters: Optional[Record] = None,
        sort: str | None = None,
        limit: int | None = None,
    ) -> List[Record]:
        params: Dict[str, Any] = dict(filters or {})
        if sort:
            params["sort"] = sort
        if limit is not None:
            params["limit"] = limit
        response = await self._request("GET", f"/entities/{entity}", params=params)
        return self._json(response) or []

    async def get(self, entity: str, entity_id: str) -> Optional[Record]:
        """Fetch one record; a 404 means it does not exist"""
        try:
            response = await self._request("GET", f"/entities/{entity}/{entity_id}")
        except EntityAPIError as e:
            if e.status == 404:
                return None
            raise
        return self._json(response)

    async def create(self, entity: str, data: Record) -> Record:
        response = await self._request("POST", f"/entities/{entity}", json=data)
        return self._json(response)

    async def update(self, entity: str, entity_id: str, data: Record) -> Record:
        response = await self._request("PUT", f"/entities/{entity}/{entity_id}", json=data)
        return self._json(response)

    async def delete(self, entity: str, entity_id: str) -> Optional[Record]:
        response = await self._request("DELETE", f"/entities/{entity}/{entity_id}")
        return self._json(response)

    async def query(self, entity: str, query: Record) -> List[Record]:
        response = await self._request("POST", f"/entities/{entity}/query", json=query)
        return self._json(response) or []
