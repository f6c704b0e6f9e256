"""
SalesBoard API client for engagement counters.

Used by client-side components (the favorites ledger) to report views and
favorite toggles. Every call is fire-and-forget: failures are logged and
never raised, so they cannot block the user action they accompany.
"""

from uuid import UUID

import httpx
from structlog import get_logger

logger = get_logger(__name__)


class SalesApiClient:
    """Thin async client for the public counter endpoints."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http_client = http_client

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Get HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def record_view(self, sale_id: UUID | str) -> bool:
        return await self._send("POST", f"/sales/{sale_id}/views", "record_view")

    async def increment_favorite(self, sale_id: UUID | str) -> bool:
        return await self._send("POST", f"/sales/{sale_id}/favorites", "increment_favorite")

    async def decrement_favorite(self, sale_id: UUID | str) -> bool:
        return await self._send("DELETE", f"/sales/{sale_id}/favorites", "decrement_favorite")

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()

    async def _send(self, method: str, path: str, operation: str) -> bool:
        """Issue the request; True on 2xx, False (logged) on any failure."""
        try:
            response = await self.http_client.request(method, f"{self.base_url}{path}")
            response.raise_for_status()
            return True
        except httpx.HTTPStatusError as e:
            logger.warning(
                "counter_update_rejected",
                operation=operation,
                status=e.response.status_code,
            )
        except httpx.HTTPError as e:
            logger.warning("counter_update_failed", operation=operation, error=str(e))
        return False
