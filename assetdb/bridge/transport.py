"""HTTP transport — existence probes and full fetches over ``httpx``.

Bridge boundary
---------------
The engine needs exactly two network operations:

- ``probe(url) -> bool`` — a lightweight request (``OPTIONS`` by default)
  answering "does this URL exist?".
- ``fetch(url) -> FetchResult`` — a full ``GET`` returning status and bytes.

``HttpTransport`` wraps one shared ``httpx.AsyncClient``.  Tests inject an
``httpx.MockTransport`` through the ``transport`` argument.  Status mapping
(404/410 → not found, other non-2xx → transport error) lives in
``raise_for_status`` so every caller applies it the same way.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict

from assetdb.bridge.mime import mime_type_of
from assetdb.core.errors import AssetDBError, AssetNotFoundError, TransportError

logger = logging.getLogger(__name__)

NOT_FOUND_STATUSES = frozenset({404, 410})
DEFAULT_TIMEOUT_SECONDS = 30.0
USER_AGENT = "assetdb/0.1"


class FetchResult(BaseModel):
    """Status, bytes and content type of a completed ``GET``."""

    model_config = ConfigDict(frozen=True)

    url: str
    status: int
    content: bytes = b""
    content_type: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def mime_type(self) -> str:
        """The response's media type, or one inferred from the URL."""
        media_type = self.content_type.split(";", 1)[0].strip()
        return media_type or mime_type_of(self.url)


def raise_for_status(
    result: FetchResult,
    not_found: type[AssetDBError] | None = None,
    **not_found_kwargs: Any,
) -> FetchResult:
    """Map a non-success ``FetchResult`` onto the error taxonomy.

    404/410 raise *not_found* (``AssetNotFoundError`` by default); any other
    non-2xx raises ``TransportError``.  Successful results pass through.
    """
    if result.ok:
        return result
    if result.status in NOT_FOUND_STATUSES:
        if not_found is None:
            raise AssetNotFoundError(result.url, result.status)
        raise not_found(**not_found_kwargs)
    raise TransportError(result.url, result.status)


class HttpTransport:
    """Asynchronous HTTP transport used by the locator, installer and resolver.

    Parameters
    ----------
    timeout:
        Per-request timeout in seconds.
    probe_method:
        HTTP method used by ``probe``.  Only a 200 answer counts as "exists".
    transport:
        Optional ``httpx`` transport, e.g. ``httpx.MockTransport`` in tests.
    client:
        Optional pre-built ``httpx.AsyncClient``.  When given, the caller owns
        it and ``aclose`` leaves it open.
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        probe_method: str = "OPTIONS",
        transport: httpx.AsyncBaseTransport | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._probe_method = probe_method.upper()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
            transport=transport,
        )

    @property
    def probe_method(self) -> str:
        return self._probe_method

    async def probe(self, url: str) -> bool:
        """Return ``True`` if *url* answers the probe with 200.

        Raises
        ------
        TransportError
            If no response could be obtained at all.
        """
        try:
            response = await self._client.request(self._probe_method, url)
        except httpx.HTTPError as exc:
            raise TransportError(url, detail=str(exc) or type(exc).__name__) from exc
        logger.debug("Probe %s %s -> %d", self._probe_method, url, response.status_code)
        return response.status_code == 200

    async def fetch(self, url: str) -> FetchResult:
        """Issue a ``GET`` for *url* and return the full response.

        Non-success statuses are returned, not raised; see ``raise_for_status``.

        Raises
        ------
        TransportError
            On a transport-level failure (timeout, connection refused, ...).
        """
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as exc:
            raise TransportError(url, detail=str(exc) or type(exc).__name__) from exc
        logger.debug("GET %s -> %d (%d bytes)", url, response.status_code, len(response.content))
        return FetchResult(
            url=url,
            status=response.status_code,
            content=response.content,
            content_type=response.headers.get("content-type", ""),
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HttpTransport:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
