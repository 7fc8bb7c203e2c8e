"""Paginated listing harvester.

Flow per run:
1. Fetch the landing-page nonce (fatal if missing).
2. Query page 1 for the pager totals (fatal if it fails).
3. Walk the requested page range sequentially with a delay before every
   request, retrying each page with exponential backoff. A page that
   exhausts its retries is skipped; too many skipped pages in a row
   abort the run.

``heartbeat`` is called with the current page number before every wait
and every request, including those on pages that end up skipped.
"""

import asyncio
from typing import AsyncIterator, Callable, Dict, List, Optional
from urllib.parse import quote

from tenancy_watch.core.config import settings
from tenancy_watch.core.exceptions import AppError, HarvestAbortedError, TokenUnavailableError
from tenancy_watch.services.harvest.cancellation import CancellationToken
from tenancy_watch.services.harvest.client import ListingClient
from tenancy_watch.services.harvest.parsers import extract_total_pages, extract_total_results
from tenancy_watch.services.harvest.records import HarvestedRecord, PageBatch
from tenancy_watch.services.harvest.sources import ListingSource
from tenancy_watch.utils.logging import get_logger

LOGGER = get_logger(__name__)


class Harvester:
    """Produces page batches for one listing source."""

    def __init__(
        self,
        client: ListingClient,
        source: ListingSource,
        base_delay: Optional[float] = None,
        max_retries: Optional[int] = None,
        max_consecutive_failures: Optional[int] = None,
    ):
        self.client = client
        self.source = source
        self.base_delay = settings.harvest.base_delay_seconds if base_delay is None else base_delay
        self.max_retries = settings.harvest.max_retries if max_retries is None else max_retries
        self.max_consecutive_failures = (
            settings.harvest.max_consecutive_failures
            if max_consecutive_failures is None
            else max_consecutive_failures
        )
        self.total_pages = 0
        self.total_results = 0

    async def _acquire_token(self) -> str:
        token = await self.client.fetch_token(self.source)
        if not token:
            raise TokenUnavailableError(
                f"Could not obtain access token for {self.source.source_type.value} listing"
            )
        return token

    async def _fetch_page(self, token: str, page: int) -> List[HarvestedRecord]:
        payload = await self.client.query_page(self.source, token, page)
        return self.source.parse(payload["template"])

    async def _fetch_with_retries(
        self,
        token: str,
        page: int,
        heartbeat: Optional[Callable[[int], None]] = None,
    ) -> Optional[List[HarvestedRecord]]:
        """Fetch and parse one page; None once every attempt has failed."""
        attempts = self.max_retries + 1
        for attempt in range(attempts):
            if heartbeat is not None:
                heartbeat(page)
            try:
                return await self._fetch_page(token, page)
            except (AppError, ValueError, KeyError) as e:
                LOGGER.warning(
                    f"Page {page} failed (attempt {attempt + 1}/{attempts}): {e}",
                    extra={"source_type": self.source.source_type.value, "page": page},
                )
            if attempt < attempts - 1:
                backoff = self.base_delay * (2 ** attempt)
                LOGGER.info(f"Retrying page {page} in {backoff}s")
                if heartbeat is not None:
                    heartbeat(page)
                await asyncio.sleep(backoff)
        return None

    async def iter_pages(
        self,
        start_page: int = 1,
        end_page: Optional[int] = None,
        cancellation: Optional[CancellationToken] = None,
        heartbeat: Optional[Callable[[int], None]] = None,
    ) -> AsyncIterator[PageBatch]:
        """Yield page batches from ``start_page`` to ``end_page`` (inclusive).

        Args:
            start_page: First page to yield (1-indexed)
            end_page: Last page to yield; clamped to the listing's page count
            cancellation: Token checked once before each page request
            heartbeat: Called with the page number before each delay, attempt
                and backoff, and when a page is skipped

        Raises:
            TokenUnavailableError: If the landing-page nonce can't be read
            HarvestAbortedError: If page 1 fails or too many consecutive pages fail
        """
        start_page = max(start_page, 1)
        source_name = self.source.source_type.value
        LOGGER.info(f"Starting {source_name} harvest from page {start_page}")

        token = await self._acquire_token()

        try:
            first_payload = await self.client.query_page(self.source, token, 1)
        except AppError as e:
            raise HarvestAbortedError(
                f"Listing query failed on first page for {source_name}: {e}", original_error=e
            )

        self.total_pages = extract_total_pages(first_payload)
        self.total_results = extract_total_results(first_payload)
        last_page = min(end_page, self.total_pages) if end_page else self.total_pages

        LOGGER.info(
            f"{source_name}: {self.total_results} results across {self.total_pages} pages, "
            f"processing pages {start_page} to {last_page}"
        )

        if start_page == 1 and last_page >= 1:
            if cancellation and await cancellation.is_cancelled():
                return
            yield PageBatch(
                page=1,
                total_pages=self.total_pages,
                total_results=self.total_results,
                records=self.source.parse(first_payload["template"]),
            )

        consecutive_failures = 0
        for page in range(max(start_page, 2), last_page + 1):
            if cancellation and await cancellation.is_cancelled():
                LOGGER.info(f"{source_name} harvest cancelled before page {page}")
                return

            if heartbeat is not None:
                heartbeat(page)
            await asyncio.sleep(self.base_delay * (1 + consecutive_failures))

            records = await self._fetch_with_retries(token, page, heartbeat)
            if records is None:
                consecutive_failures += 1
                LOGGER.warning(
                    f"Skipping page {page} after retries "
                    f"({consecutive_failures} consecutive failures)"
                )
                if heartbeat is not None:
                    heartbeat(page)
                if consecutive_failures >= self.max_consecutive_failures:
                    raise HarvestAbortedError(
                        f"Aborted {source_name} harvest after {consecutive_failures} "
                        f"consecutive failed pages (last: {page})"
                    )
                continue

            consecutive_failures = 0
            yield PageBatch(
                page=page,
                total_pages=self.total_pages,
                total_results=self.total_results,
                records=records,
            )

        LOGGER.info(f"{source_name} harvest window complete at page {last_page}")

    async def search(self, term: str) -> Dict:
        """Run a single-page listing search for ``term``."""
        term = (term or "").strip()
        if not term:
            return {"results": [], "total_count": 0, "error": "No search term provided"}

        token = await self.client.fetch_token(self.source)
        if not token:
            return {"results": [], "total_count": 0, "error": "Could not connect to listing site"}

        try:
            payload = await self.client.query_page(self.source, token, 1, search_term=term)
        except AppError as e:
            LOGGER.error(f"Listing search failed for {term!r}: {e}")
            return {"results": [], "total_count": 0, "error": "Listing search failed"}

        results = self.source.parse(payload["template"])
        return {
            "results": results,
            "total_count": len(results),
            "search_url": self.search_url(term),
            "error": None,
        }

    def search_url(self, term: str) -> str:
        return f"{self.source.landing_url}?_search={quote(term)}"
