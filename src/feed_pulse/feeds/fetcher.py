# ABOUTME: Source fetcher retrieving raw feed bytes over HTTP.
# ABOUTME: Uses httpx with a fixed timeout; transport and status failures raise FetchError.

import httpx
import structlog

from feed_pulse.config import Settings, get_settings
from feed_pulse.exceptions import FetchError

log = structlog.get_logger()


class FeedFetcher:
    """Fetches raw syndication documents."""

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-initialized HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.settings.feed_timeout,
                headers={"User-Agent": self.settings.feed_user_agent},
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "FeedFetcher":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def fetch(self, url: str) -> bytes:
        """Download a feed document in a single attempt.

        Args:
            url: The feed URL.

        Returns:
            The raw response body.

        Raises:
            FetchError: On connection errors, timeouts, or a non-2xx status.
        """
        log.debug("fetching_feed", url=url)
        try:
            response = await self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(url, f"HTTP {e.response.status_code}") from e
        except httpx.TimeoutException as e:
            raise FetchError(url, "timed out") from e
        except httpx.HTTPError as e:
            raise FetchError(url, str(e) or type(e).__name__) from e
        return response.content
