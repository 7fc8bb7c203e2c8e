"""HTTP client for the token-gated FacetWP listing endpoint."""

import re
from typing import Any, Dict, Optional

import httpx

from tenancy_watch.core.config import settings
from tenancy_watch.core.exceptions import APIClientError, APITimeoutError
from tenancy_watch.services.harvest.sources import REFRESH_URL, ListingSource
from tenancy_watch.utils.logging import get_logger

LOGGER = get_logger(__name__)

NONCE_PATTERN = re.compile(r'"nonce":"([^"]+)"')


class ListingClient:
    """Fetches the landing-page nonce and queries listing pages.

    One instance owns one ``httpx.AsyncClient``; use it as an async
    context manager so the connection pool is closed.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
        max_redirects: Optional[int] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.timeout = timeout or settings.harvest.request_timeout_seconds
        self.user_agent = user_agent or settings.harvest.user_agent
        self.max_redirects = max_redirects or settings.harvest.max_redirects
        self._client = http_client or httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            max_redirects=self.max_redirects,
            headers={"User-Agent": self.user_agent},
        )

    async def __aenter__(self) -> "ListingClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch_token(self, source: ListingSource) -> Optional[str]:
        """Read the access nonce embedded in the listing's landing page.

        Returns None when the page can't be fetched or carries no nonce;
        the caller decides whether that is fatal.
        """
        try:
            response = await self._client.get(
                source.landing_url,
                headers={"Accept": "text/html,application/xhtml+xml"},
            )
        except httpx.HTTPError as e:
            LOGGER.error(
                f"Failed to fetch landing page for {source.source_type.value}: {e}",
                extra={"url": source.landing_url},
            )
            return None

        if response.status_code != 200:
            LOGGER.warning(
                f"Landing page returned HTTP {response.status_code}",
                extra={"url": source.landing_url},
            )
            return None

        match = NONCE_PATTERN.search(response.text)
        return match.group(1) if match else None

    def build_refresh_payload(
        self, source: ListingSource, token: str, page: int, search_term: str = ""
    ) -> Dict[str, Any]:
        return {
            "action": "facetwp_refresh",
            "nonce": token,
            "data": {
                "facets": {
                    "search": search_term,
                    source.date_facet: [],
                },
                "frozen_facets": {},
                "http_params": {
                    "get": {"_search": search_term} if search_term else {},
                    "uri": source.uri,
                    "url_vars": {},
                },
                "template": source.template,
                "extras": {"counts": True, "pager": True},
                "soft_refresh": 0,
                "is_bfcache": 0,
                "first_load": 0,
                "paged": page,
            },
        }

    async def query_page(
        self, source: ListingSource, token: str, page: int, search_term: str = ""
    ) -> Dict[str, Any]:
        """POST a refresh for one listing page.

        Returns:
            The decoded JSON payload; guaranteed to contain a ``template`` string.

        Raises:
            APITimeoutError: If the request times out
            APIClientError: On HTTP errors or a payload without a template
        """
        payload = self.build_refresh_payload(source, token, page, search_term)
        try:
            response = await self._client.post(REFRESH_URL, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise APITimeoutError(f"Listing query timed out on page {page}", original_error=e)
        except httpx.HTTPStatusError as e:
            raise APIClientError(
                f"Listing query returned HTTP {e.response.status_code} on page {page}",
                original_error=e,
            )
        except (httpx.HTTPError, ValueError) as e:
            raise APIClientError(f"Listing query failed on page {page}: {e}", original_error=e)

        if not isinstance(data, dict) or not data.get("template"):
            raise APIClientError(f"Listing query returned no template on page {page}")
        return data
