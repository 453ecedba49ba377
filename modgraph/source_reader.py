"""Logic for reading module source from disk or over HTTP."""

import asyncio
import logging

import httpx

from modgraph.errors import SourceUnavailable
from modgraph.locations import is_file_location, location_to_path

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class SourceReader:
    """Reads module text; owns a lazily created HTTP client for remote modules."""

    def __init__(
        self, client: httpx.AsyncClient | None = None, timeout: float = DEFAULT_TIMEOUT
    ) -> None:
        """Initialize with an optional shared client and a fetch timeout in seconds."""
        self._client = client
        self._owns_client = client is None
        self.timeout = timeout

    async def read(self, location: str) -> str:
        """Return the text at 'location', raising SourceUnavailable on failure."""
        logger.debug("Reading module content from %s", location)
        if is_file_location(location):
            return await self._read_file(location)
        return await self._fetch(location)

    async def _read_file(self, location: str) -> str:
        try:
            path = location_to_path(location)
            return await asyncio.to_thread(path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError, ValueError) as exc:
            raise SourceUnavailable(location, str(exc)) from exc

    async def _fetch(self, location: str) -> str:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout, follow_redirects=True
            )
        try:
            response = await self._client.get(location)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            reason = f"{exc.response.status_code} {exc.response.reason_phrase}"
            raise SourceUnavailable(location, reason) from exc
        except httpx.HTTPError as exc:
            raise SourceUnavailable(location, str(exc) or type(exc).__name__) from exc
        return response.text

    async def aclose(self) -> None:
        """Close the HTTP client if this reader created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
