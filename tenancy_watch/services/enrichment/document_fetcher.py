"""Resolves the bytes of a case's source document."""

from dataclasses import dataclass
from typing import Optional

import httpx

from tenancy_watch.core.config import settings
from tenancy_watch.core.exceptions import AppError, DocumentUnavailableError
from tenancy_watch.database.models import CaseRecord
from tenancy_watch.services.storage_service import StorageService, archive_key
from tenancy_watch.utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass
class FetchedDocument:
    data: bytes
    url: str
    filename: str
    from_archive: bool = False


class DocumentFetcher:
    """Archive first, then the original URLs in listing order.

    Responses smaller than ``min_bytes`` are treated as error pages.
    Documents fetched from the source are written back to the archive
    when ``archive_on_fetch`` is set.
    """

    def __init__(
        self,
        storage: Optional[StorageService] = None,
        timeout: Optional[float] = None,
        min_bytes: Optional[int] = None,
        archive_on_fetch: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.storage = storage or StorageService()
        self.timeout = timeout or settings.llm.document_timeout_seconds
        self.min_bytes = settings.llm.min_document_bytes if min_bytes is None else min_bytes
        self.archive_on_fetch = archive_on_fetch
        self.transport = transport

    async def _from_archive(self, key: str) -> Optional[bytes]:
        try:
            data = await self.storage.download(key)
        except AppError as e:
            LOGGER.warning(f"Archive lookup failed for {key}, falling back to source: {e}")
            return None
        if data is not None and len(data) >= self.min_bytes:
            return data
        return None

    async def _from_source(self, client: httpx.AsyncClient, url: str) -> bytes:
        response = await client.get(url)
        if response.status_code != 200:
            raise DocumentUnavailableError(f"Document download failed: HTTP {response.status_code}")
        if len(response.content) < self.min_bytes:
            raise DocumentUnavailableError("Document too small, likely an error page")
        return response.content

    async def fetch(self, case: CaseRecord) -> FetchedDocument:
        """Return the first document that can be read.

        Raises:
            DocumentUnavailableError: If no archived copy or source URL works
        """
        documents = [doc for doc in (case.documents or []) if doc.get("url")]
        if not documents:
            raise DocumentUnavailableError(f"No document links for case {case.case_ref}")

        for doc in documents:
            key = archive_key(case.source_type, case.case_ref, doc["url"])
            data = await self._from_archive(key)
            if data is not None:
                LOGGER.debug(f"Archive hit for {case.case_ref}: {key}")
                return FetchedDocument(data=data, url=doc["url"], filename=key.rsplit("/", 1)[-1], from_archive=True)

        errors = []
        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            headers={"User-Agent": settings.harvest.user_agent},
            transport=self.transport,
        ) as client:
            for doc in documents:
                url = doc["url"]
                try:
                    data = await self._from_source(client, url)
                except (httpx.HTTPError, DocumentUnavailableError) as e:
                    LOGGER.warning(f"Document fetch failed for {case.case_ref} ({url}): {e}")
                    errors.append(str(e))
                    continue

                key = archive_key(case.source_type, case.case_ref, url)
                if self.archive_on_fetch:
                    try:
                        await self.storage.upload(key, data)
                    except AppError as e:
                        LOGGER.warning(f"Could not archive {key}: {e}")
                return FetchedDocument(data=data, url=url, filename=key.rsplit("/", 1)[-1])

        raise DocumentUnavailableError(
            f"Document download failed for {case.case_ref}: {'; '.join(errors) or 'no usable links'}"
        )
