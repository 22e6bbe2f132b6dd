"""
HTTP client for the Audit Trail endpoint.

Speaks the same JSON envelope as the dashboard page: reads with
``GET /exec?action=read`` and writes with ``POST /exec``.

Example:
    >>> async with AuditTrailClient("http://localhost:8080") as trail:
    ...     created = await trail.create({"timestamp": "2025-01-01T00:00:00Z",
    ...                                   "assetCode": "A-1", "action": "Checkout"})
    ...     entries = (await trail.read())["entries"]
    ...     await trail.delete(created["rowNumber"])

Invariants:
    - Row numbers returned by read() are only valid until the next delete
    - With raise_on_error, an error envelope raises RemoteError
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

from .errors import RemoteError
from .gateway import DELETE, STATUS_ERROR

logger = logging.getLogger(__name__)

ENDPOINT_PATH = "/exec"


class AuditTrailClient:
    """Async client for the Audit Trail endpoint.

    Attributes:
        base_url: Server base URL
        raise_on_error: Raise RemoteError for error envelopes instead of
            returning them
    """

    def __init__(
        self,
        base_url: str,
        raise_on_error: bool = True,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Server base URL
            raise_on_error: Raise on error envelopes
            timeout: Request timeout in seconds
            transport: Optional httpx transport (e.g. ASGITransport in tests)
        """
        self.base_url = base_url
        self.raise_on_error = raise_on_error
        self._http = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> AuditTrailClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._http.aclose()

    async def read(self) -> dict[str, Any]:
        """Fetch all entries.

        Returns:
            Envelope with ``entries`` and ``count``
        """
        response = await self._http.get(ENDPOINT_PATH, params={"action": "read"})
        return self._envelope(response)

    async def create(self, entry: Mapping[str, Any]) -> dict[str, Any]:
        """Append an entry.

        Returns:
            Envelope with ``rowNumber`` of the new entry
        """
        response = await self._http.post(ENDPOINT_PATH, json=dict(entry))
        return self._envelope(response)

    async def delete(self, row_number: int) -> dict[str, Any]:
        """Delete the entry at ``row_number``.

        Returns:
            Envelope with ``deletedRow`` and ``assetCode``
        """
        response = await self._http.post(
            ENDPOINT_PATH,
            json={"action": DELETE, "rowNumber": row_number},
        )
        return self._envelope(response)

    def _envelope(self, response: httpx.Response) -> dict[str, Any]:
        response.raise_for_status()
        envelope = response.json()
        if self.raise_on_error and envelope.get("status") == STATUS_ERROR:
            logger.debug(f"Error envelope from {self.base_url}: {envelope}")
            raise RemoteError(envelope.get("message", ""), code=envelope.get("code"))
        return envelope
