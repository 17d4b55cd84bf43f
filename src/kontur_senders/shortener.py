"""Best-effort trigger link shortening.

Any shortener failure falls back to the long link.
"""

from __future__ import annotations

import logging

import httpx

from kontur_senders.errors import ShortenerError

SHORTENER_SUCCESS_STATUS = 200


def trigger_url(front_uri: str, trigger_id: str) -> str:
    """Build the canonical front-end link of a trigger."""
    return f"{front_uri}/trigger/{trigger_id}"


class LinkShortener:
    """Client for a goo.gl-style URL shortener API.

    The long link is POSTed as ``{"longUrl": ...}`` to ``<api_url>?key=<api_key>``
    and the short link is read from the ``id`` field of the response.
    """

    def __init__(
        self,
        api_url: str | None,
        api_key: str | None,
        *,
        client: httpx.Client | None = None,
        timeout: float = 10.0,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the shortener.

        Args:
            api_url: Shortener endpoint, or None to disable shortening.
            api_key: Shortener API key, or None to disable shortening.
            client: Shared HTTP client. A private one is created when omitted.
            timeout: Request timeout in seconds for a private client.
            logger: Logger for fallback warnings.
        """
        self.api_url = api_url or None
        self.api_key = api_key or None
        self.timeout = timeout
        self._client = client
        self._logger = logger or logging.getLogger(__name__)

    @property
    def enabled(self) -> bool:
        """Check if both endpoint and key are configured."""
        return self.api_url is not None and self.api_key is not None

    def shorten(self, long_link: str) -> str:
        """Return a short link for ``long_link``, or ``long_link`` on any failure."""
        if not self.enabled:
            return long_link
        try:
            return self._request_short_link(long_link)
        except ShortenerError as e:
            self._logger.warning(f"Can't shorten url {long_link}: {e}")
            return long_link

    def _request_short_link(self, long_link: str) -> str:
        """Call the shortener API, raising ShortenerError on any irregularity."""
        try:
            if self._client is not None:
                response = self._post(self._client, long_link)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = self._post(client, long_link)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ShortenerError(f"request failed: {e}") from e

        if response.status_code != SHORTENER_SUCCESS_STATUS:
            raise ShortenerError(f"unexpected status {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise ShortenerError("response is not valid JSON") from e

        short_link = data.get("id") if isinstance(data, dict) else None
        if not isinstance(short_link, str) or not short_link:
            raise ShortenerError("response has no short link")
        return short_link

    def _post(self, client: httpx.Client, long_link: str) -> httpx.Response:
        return client.post(
            self.api_url,
            params={"key": self.api_key},
            json={"longUrl": long_link},
        )
