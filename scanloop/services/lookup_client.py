"""
==============================================================================
Product Lookup Client Module
==============================================================================

Async HTTP client that resolves a decoded code to a product record.

Request:
--------
    GET {base_url}{lookup_path}     e.g. /api/v1/products/lookup/7891000100103

Any non-2xx status, a body that is not a JSON object, or a transport error
is reported as LookupFailure. The client never retries.

==============================================================================
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from scanloop.core.exceptions import LookupFailure


# Module logger
logger = logging.getLogger(__name__)

ProductRecord = Dict[str, Any]


class ProductLookupClient:
    """
    Lookup service client sharing one httpx.AsyncClient.

    Args:
        base_url: Service base URL
        lookup_path: Resource path containing a ``{code}`` placeholder
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (tests use httpx.MockTransport)

    Example:
        >>> client = ProductLookupClient("http://127.0.0.1:8000")
        >>> record = await client.lookup("7891000100103")
        >>> await client.aclose()
    """

    def __init__(
        self,
        base_url: str,
        lookup_path: str = "/api/v1/products/lookup/{code}",
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._lookup_path = lookup_path
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
        )

    def path_for(self, code: str) -> str:
        """Build the resource path for a code."""
        return self._lookup_path.format(code=quote(code, safe=""))

    async def lookup(self, code: str) -> ProductRecord:
        """
        Resolve a code to a product record.

        Args:
            code: Confirmed decoded value

        Returns:
            Product record (the ``product`` member of the response when the
            service wraps it, otherwise the whole JSON body)

        Raises:
            LookupFailure: Error status, non-object body or transport error
        """
        try:
            response = await self._client.get(self.path_for(code))
        except httpx.HTTPError as e:
            raise LookupFailure(code, f"Lookup transport error: {e}") from e

        if not response.is_success:
            raise LookupFailure(
                code,
                f"Lookup failed with HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise LookupFailure(code, "Lookup returned invalid JSON", response.status_code) from e

        if isinstance(body, dict) and "product" in body:
            body = body["product"]
        if not isinstance(body, dict) or not body:
            raise LookupFailure(code, "Lookup returned no product record", response.status_code)
        return body

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()
