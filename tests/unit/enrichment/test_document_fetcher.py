"""Unit tests for DocumentFetcher archive-first resolution."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from tenancy_watch.core.exceptions import AppError, DocumentUnavailableError
from tenancy_watch.services.enrichment.document_fetcher import DocumentFetcher

URLS = [
    "https://rtb.ie/files/DR0100-1.pdf",
    "https://rtb.ie/files/DR0100-1-corrected.pdf",
    "https://rtb.ie/files/DR0100-1-order.pdf",
]


def _storage(download=None) -> MagicMock:
    storage = MagicMock()
    storage.download = AsyncMock(return_value=download)
    storage.upload = AsyncMock()
    return storage


def _fetcher(storage, handler, **kwargs) -> DocumentFetcher:
    return DocumentFetcher(
        storage=storage,
        timeout=5,
        min_bytes=1000,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def _documents(*urls):
    return [{"label": f"Part {i}", "url": url} for i, url in enumerate(urls, start=1)]


class TestArchiveLookup:

    @pytest.mark.asyncio
    async def test_archive_hit_skips_the_source(self, case_factory, sample_pdf_content):
        requested = []

        def handler(request):
            requested.append(str(request.url))
            return httpx.Response(200, content=sample_pdf_content)

        storage = _storage(download=sample_pdf_content)
        fetcher = _fetcher(storage, handler)

        document = await fetcher.fetch(case_factory())

        assert document.from_archive is True
        assert document.data == sample_pdf_content
        assert document.filename == "DR0100-1.pdf"
        assert requested == []
        storage.download.assert_awaited_once_with("disputes/DR0100-1/DR0100-1.pdf")
        storage.upload.assert_not_called()

    @pytest.mark.asyncio
    async def test_short_archive_copy_is_ignored(self, case_factory, sample_pdf_content):
        storage = _storage(download=b"<html>not found</html>")
        fetcher = _fetcher(storage, lambda request: httpx.Response(200, content=sample_pdf_content))

        document = await fetcher.fetch(case_factory())

        assert document.from_archive is False
        assert document.data == sample_pdf_content

    @pytest.mark.asyncio
    async def test_archive_error_falls_back_to_source(self, case_factory, sample_pdf_content):
        storage = _storage()
        storage.download.side_effect = AppError("Archive download failed with HTTP 500")
        fetcher = _fetcher(storage, lambda request: httpx.Response(200, content=sample_pdf_content))

        document = await fetcher.fetch(case_factory())

        assert document.from_archive is False
        assert document.url == "https://rtb.ie/files/DR0100-1.pdf"


class TestSourceFallback:

    @pytest.mark.asyncio
    async def test_urls_are_tried_in_listing_order(self, case_factory, sample_pdf_content):
        requested = []
        responses = {
            URLS[0]: httpx.Response(404, text="Not Found"),
            URLS[1]: httpx.Response(200, content=b"%PDF-1.4 truncated"),
            URLS[2]: httpx.Response(200, content=sample_pdf_content),
        }

        def handler(request):
            requested.append(str(request.url))
            return responses[str(request.url)]

        storage = _storage()
        fetcher = _fetcher(storage, handler)

        document = await fetcher.fetch(case_factory(documents=_documents(*URLS)))

        assert requested == URLS
        assert [c.args[0] for c in storage.download.call_args_list] == [
            "disputes/DR0100-1/DR0100-1.pdf",
            "disputes/DR0100-1/DR0100-1-corrected.pdf",
            "disputes/DR0100-1/DR0100-1-order.pdf",
        ]
        assert document.url == URLS[2]
        assert document.filename == "DR0100-1-order.pdf"
        assert document.from_archive is False
        storage.upload.assert_awaited_once_with("disputes/DR0100-1/DR0100-1-order.pdf", sample_pdf_content)

    @pytest.mark.asyncio
    async def test_archive_upload_failure_still_returns_document(self, case_factory, sample_pdf_content):
        storage = _storage()
        storage.upload.side_effect = AppError("Upload failed: bucket not found")
        fetcher = _fetcher(storage, lambda request: httpx.Response(200, content=sample_pdf_content))

        document = await fetcher.fetch(case_factory())

        assert document.data == sample_pdf_content

    @pytest.mark.asyncio
    async def test_archive_on_fetch_disabled(self, case_factory, sample_pdf_content):
        storage = _storage()
        fetcher = _fetcher(
            storage, lambda request: httpx.Response(200, content=sample_pdf_content), archive_on_fetch=False
        )

        await fetcher.fetch(case_factory())

        storage.upload.assert_not_called()

    @pytest.mark.asyncio
    async def test_all_sources_failing(self, case_factory):
        responses = [
            httpx.Response(400, text="Bad Request"),
            httpx.Response(200, content=b"tiny"),
            httpx.Response(503, text="Service Unavailable"),
        ]
        fetcher = _fetcher(_storage(), lambda request: responses.pop(0))

        with pytest.raises(DocumentUnavailableError) as exc_info:
            await fetcher.fetch(case_factory(documents=_documents(*URLS)))

        message = str(exc_info.value)
        assert "HTTP 400" in message
        assert "too small" in message
        assert "HTTP 503" in message

    @pytest.mark.asyncio
    async def test_transport_error_moves_to_next_url(self, case_factory, sample_pdf_content):
        def handler(request):
            if str(request.url) == URLS[0]:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, content=sample_pdf_content)

        fetcher = _fetcher(_storage(), handler)

        document = await fetcher.fetch(case_factory(documents=_documents(URLS[0], URLS[1])))

        assert document.url == URLS[1]

    @pytest.mark.asyncio
    async def test_case_without_links(self, case_factory):
        storage = _storage()
        fetcher = _fetcher(storage, lambda request: httpx.Response(500))

        with pytest.raises(DocumentUnavailableError):
            await fetcher.fetch(case_factory(documents=[{"label": "Order", "url": ""}]))

        storage.download.assert_not_called()
