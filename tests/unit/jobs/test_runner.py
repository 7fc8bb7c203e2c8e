"""Unit tests for HarvestRunner chunk execution."""

import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from tenancy_watch.core.exceptions import JobNotFoundError
from tenancy_watch.services.harvest.ingestion import IngestStats
from tenancy_watch.services.harvest.records import PageBatch
from tenancy_watch.services.harvest.runner import HarvestRunner


class FakeHarvester:
    """Yields empty batches for a window of a listing with ``total_pages`` pages."""

    def __init__(self, total_pages=10, total_results=200):
        self.total_pages = None
        self._total_pages = total_pages
        self._total_results = total_results
        self.windows = []

    async def iter_pages(self, start_page, end_page, cancellation=None, heartbeat=None):
        self.windows.append((start_page, end_page))
        self.heartbeat = heartbeat
        self.total_pages = self._total_pages
        for page in range(start_page, min(end_page, self._total_pages) + 1):
            if cancellation is not None and await cancellation.is_cancelled():
                return
            yield PageBatch(page=page, total_pages=self._total_pages, total_results=self._total_results)


def _job(status="running", **counts):
    values = dict(
        id=uuid.uuid4(),
        status=status,
        current_page=0,
        total_pages=None,
        total_results=None,
        total_records=0,
        new_records=0,
        updated_records=0,
    )
    values.update(counts)
    return SimpleNamespace(**values)


def _job_repo(job):
    repo = MagicMock()
    repo.get_by_id = AsyncMock(return_value=job)
    repo.get_status = AsyncMock(return_value=job.status if job else None)
    repo.update_progress = AsyncMock(return_value=True)
    return repo


def _ingestion(new=2, updated=1):
    ingestion = MagicMock()
    ingestion.ingest_batch = AsyncMock(return_value=IngestStats(total=new + updated, new=new, updated=updated))
    return ingestion


class TestRunChunk:

    @pytest.mark.asyncio
    async def test_accumulates_on_top_of_persisted_counts(self):
        job = _job(current_page=3, total_records=30, new_records=20, updated_records=10)
        repo = _job_repo(job)
        session = AsyncMock()
        pages = []
        runner = HarvestRunner(session, FakeHarvester(), job_repo=repo, ingestion=_ingestion())

        result = await runner.run_chunk(job.id, 4, 6, on_page=pages.append)

        assert pages == [4, 5, 6]
        assert result.last_page == 6
        assert result.total_records == 39
        assert result.new_records == 26
        assert result.updated_records == 13
        assert result.total_pages == 10
        assert result.cancelled is False
        assert result.has_more_pages is True
        assert repo.update_progress.await_count == 3
        assert repo.update_progress.call_args.kwargs["current_page"] == 6
        assert session.commit.await_count == 3

    @pytest.mark.asyncio
    async def test_page_callback_doubles_as_harvester_heartbeat(self):
        job = _job()
        harvester = FakeHarvester()
        runner = HarvestRunner(AsyncMock(), harvester, job_repo=_job_repo(job), ingestion=_ingestion())

        def on_page(page):
            pass

        await runner.run_chunk(job.id, 1, 2, on_page=on_page)

        assert harvester.heartbeat is on_page

    @pytest.mark.asyncio
    async def test_last_window_has_no_more_pages(self):
        job = _job()
        runner = HarvestRunner(AsyncMock(), FakeHarvester(total_pages=5), job_repo=_job_repo(job), ingestion=_ingestion())

        result = await runner.run_chunk(job.id, 1, 10)

        assert result.last_page == 5
        assert result.has_more_pages is False
        assert result.to_dict()["has_more_pages"] is False

    @pytest.mark.asyncio
    async def test_stops_when_job_leaves_running(self):
        job = _job()
        repo = _job_repo(job)
        repo.update_progress.side_effect = [True, False]
        runner = HarvestRunner(AsyncMock(), FakeHarvester(), job_repo=repo, ingestion=_ingestion())

        result = await runner.run_chunk(job.id, 1, 5)

        assert result.last_page == 2
        assert result.cancelled is True
        assert result.has_more_pages is False

    @pytest.mark.asyncio
    async def test_external_cancellation_is_polled(self):
        job = _job()
        repo = _job_repo(job)
        repo.get_status.side_effect = ["running", "cancelled"]
        ingestion = _ingestion()
        runner = HarvestRunner(AsyncMock(), FakeHarvester(), job_repo=repo, ingestion=ingestion)

        result = await runner.run_chunk(job.id, 1, 5)

        assert ingestion.ingest_batch.await_count == 1
        assert result.cancelled is True

    @pytest.mark.asyncio
    async def test_job_not_running(self):
        job = _job(status="cancelled", current_page=7)
        harvester = FakeHarvester()
        runner = HarvestRunner(AsyncMock(), harvester, job_repo=_job_repo(job), ingestion=_ingestion())

        result = await runner.run_chunk(job.id, 8, 12)

        assert result.cancelled is True
        assert result.last_page == 7
        assert harvester.windows == []

    @pytest.mark.asyncio
    async def test_missing_job(self):
        runner = HarvestRunner(AsyncMock(), FakeHarvester(), job_repo=_job_repo(None), ingestion=_ingestion())

        with pytest.raises(JobNotFoundError):
            await runner.run_chunk(uuid.uuid4(), 1, 5)
