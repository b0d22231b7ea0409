"""
Shared HTTP client for the catalog: one pooled aiohttp session used by the
channel source, the track source and the media byte source.
"""

import logging
from typing import Any

import aiohttp

log = logging.getLogger(__name__)


class CatalogClient:
    """
    Async HTTP client for the remote catalog.

    Features:
    - A single connection pool sized to the download worker count
    - Per-call deadlines for metadata requests
    - Streaming responses without a total deadline (only a socket read deadline)
    """

    USER_AGENT = (
        "Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0"
    )

    def __init__(
        self,
        max_connections: int = 16,
        request_timeout: float = 60.0,
        connect_timeout: float = 15.0,
        read_timeout: float = 90.0,
    ):
        """
        Initializes the client.

        Args:
            max_connections: Connection pool size; should match the download workers.
            request_timeout: Total deadline for metadata requests, in seconds.
            connect_timeout: Deadline for establishing a connection, in seconds.
            read_timeout: Deadline between two socket reads while streaming.
        """
        self.max_connections = max_connections
        self._request_timeout = aiohttp.ClientTimeout(
            total=request_timeout, connect=connect_timeout, sock_read=read_timeout
        )
        self._stream_timeout = aiohttp.ClientTimeout(
            total=None, sock_connect=connect_timeout, sock_read=read_timeout
        )
        self._session: aiohttp.ClientSession | None = None

    async def _initialize_session(self) -> aiohttp.ClientSession:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self.max_connections * 2,
                limit_per_host=self.max_connections,
                ttl_dns_cache=300,
                enable_cleanup_closed=True,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                headers={
                    "User-Agent": self.USER_AGENT,
                    "Accept-Encoding": "gzip, deflate",
                },
                timeout=self._request_timeout,
            )
            log.debug(f"Created catalog session with limit_per_host={self.max_connections}")
        return self._session

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
            log.debug("Catalog session closed.")

    async def __aenter__(self) -> "CatalogClient":
        await self._initialize_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def fetch_text(self, url: str) -> str:
        """GETs a page and returns its body. Raises on non-2xx responses."""
        session = await self._initialize_session()
        async with session.get(url) as r:
            r.raise_for_status()
            return await r.text()

    async def fetch_json(self, url: str) -> Any:
        """GETs a JSON document regardless of the declared content type."""
        session = await self._initialize_session()
        async with session.get(url) as r:
            r.raise_for_status()
            return await r.json(content_type=None)

    async def open_response(self, url: str) -> aiohttp.ClientResponse:
        """
        Starts a streaming GET. The caller owns the response and must release it.
        """
        session = await self._initialize_session()
        return await session.get(url, timeout=self._stream_timeout, allow_redirects=True)
