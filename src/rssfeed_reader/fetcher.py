"""HTTP retrieval of feed documents."""

import logging
from urllib.parse import urlparse

import httpx

from rssfeed_reader.errors import NetworkError, TransportError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
USER_AGENT = "rssfeed-reader/0.1"


def validate_url(url: str) -> str:
    """Validate that the URL has a valid format.

    Returns:
        The URL with surrounding whitespace removed.

    Raises:
        ValidationError: If the URL cannot be fetched over http(s).
    """
    url = (url or "").strip()
    try:
        result = urlparse(url)
    except ValueError:
        raise ValidationError("Invalid URL format")
    if not result.scheme or not result.netloc:
        raise ValidationError("Invalid URL format")
    if result.scheme not in ("http", "https"):
        raise ValidationError("Invalid URL format: only http and https are supported")
    return url


class FeedFetcher:
    """Performs GET requests against feed URLs.

    The fetcher never retries; retry policy belongs to whoever schedules
    the fetch.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        self.timeout = timeout
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )

    async def fetch(self, url: str) -> bytes:
        """Fetch the raw document bytes for a feed URL.

        Raises:
            ValidationError: Before any request, if the URL is malformed.
            TransportError: If the server answers with a non-2xx status.
            NetworkError: On DNS, timeout or connection failures.
        """
        url = validate_url(url)

        try:
            response = await self.client.get(url)
        except httpx.TimeoutException as e:
            raise NetworkError(f"Timed out fetching {url}") from e
        except httpx.TransportError as e:
            raise NetworkError(f"Network error fetching {url}: {e}") from e

        if not response.is_success:
            if response.status_code in (401, 403):
                raise TransportError(
                    response.status_code,
                    "Feed requires authentication. Ensure the URL is publicly accessible.",
                )
            raise TransportError(response.status_code)

        logger.debug("Fetched %s (%d bytes)", url, len(response.content))
        return response.content

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._owns_client:
            await self.client.aclose()
