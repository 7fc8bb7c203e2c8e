"""Unit tests for EnrichmentBatchService."""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tenancy_watch.core.exceptions import ExtractionError
from tenancy_watch.services.enrichment.batch import EnrichmentBatchService
from tenancy_watch.services.enrichment.verifier import VerificationOutcome


class SessionFactory:
    """Hands out a fresh mocked session per ``async with``."""

    def __init__(self):
        self.sessions = []

    @asynccontextmanager
    async def _session(self):
        session = AsyncMock()
        self.sessions.append(session)
        yield session

    def __call__(self):
        return self._session()


@pytest.fixture
def case_repo():
    with patch("tenancy_watch.services.enrichment.batch.CaseRecordRepository") as repo_cls:
        repo = repo_cls.return_value
        repo.mark_without_documents = AsyncMock(return_value=2)
        repo.list_pending_enrichment = AsyncMock(return_value=[])
        repo.list_high_awards = AsyncMock(return_value=[])
        repo.save_enrichment = AsyncMock()
        yield repo


@pytest.fixture
def resolver():
    with patch("tenancy_watch.services.enrichment.batch.EntityResolver") as resolver_cls:
        instance = resolver_cls.return_value
        instance.recompute_for_cases = AsyncMock(return_value=3)
        yield instance


def _outcome(amount, disagreement=False):
    return VerificationOutcome(
        fields={"ai_compensation_amount": amount, "ai_error": None},
        model="gemini:flash",
        disagreement=disagreement,
    )


class TestProcessPending:

    @pytest.mark.asyncio
    async def test_no_credentials_touches_nothing(self):
        factory = SessionFactory()
        verifier_factory = MagicMock()
        service = EnrichmentBatchService(
            session_factory=factory, verifier_factory=verifier_factory, has_credentials=False
        )

        result = await service.process_pending("disputes", 10)

        assert result.processed == 0
        assert result.error == "No AI API key configured"
        assert factory.sessions == []
        verifier_factory.assert_not_called()

    @pytest.mark.asyncio
    async def test_nothing_pending(self, case_repo, resolver):
        verifier_factory = MagicMock()
        service = EnrichmentBatchService(
            session_factory=SessionFactory(), verifier_factory=verifier_factory, has_credentials=True
        )

        result = await service.process_pending("disputes", 10)

        assert result.total == 0
        assert result.skipped_no_document == 2
        verifier_factory.assert_not_called()
        case_repo.mark_without_documents.assert_awaited_once_with("disputes", "No PDF available")

    @pytest.mark.asyncio
    async def test_failures_are_isolated(self, case_repo, resolver, case_factory):
        cases = [case_factory("DR0001"), case_factory("DR0002"), case_factory("DR0003")]
        case_repo.list_pending_enrichment.return_value = cases

        async def verify(case):
            if case.case_ref == "DR0002":
                raise ExtractionError("model returned garbage")
            return _outcome(100.0, disagreement=case.case_ref == "DR0003")

        verifier = MagicMock()
        verifier.verify = AsyncMock(side_effect=verify)
        service = EnrichmentBatchService(
            session_factory=SessionFactory(),
            verifier_factory=lambda: verifier,
            concurrency=2,
            has_credentials=True,
        )

        result = await service.process_pending("disputes", 3)

        assert result.total == 3
        assert result.processed == 2
        assert result.failed == 1
        assert result.disagreements == 1
        assert verifier.verify.await_count == 3

        saved = {c.args[0]: c.args[1] for c in case_repo.save_enrichment.call_args_list}
        assert len(saved) == 3
        assert saved[cases[1].id]["ai_error"] == "model returned garbage"
        assert saved[cases[1].id]["ai_processed_at"] is not None
        assert saved[cases[0].id]["ai_compensation_amount"] == 100.0

        recomputed = list(resolver.recompute_for_cases.call_args.args[0])
        assert sorted(recomputed) == sorted([cases[0].id, cases[2].id])
        assert result.parties_recomputed == 3

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self, case_repo, resolver, case_factory):
        import asyncio

        case_repo.list_pending_enrichment.return_value = [case_factory(f"DR{i:04d}") for i in range(6)]
        active = 0
        peak = 0

        async def verify(case):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0)
            active -= 1
            return _outcome(None)

        verifier = MagicMock()
        verifier.verify = AsyncMock(side_effect=verify)
        service = EnrichmentBatchService(
            session_factory=SessionFactory(),
            verifier_factory=lambda: verifier,
            concurrency=2,
            has_credentials=True,
        )

        result = await service.process_pending("disputes", 6)

        assert result.processed == 6
        assert peak <= 2


class TestReverifyHighAwards:

    @pytest.mark.asyncio
    async def test_reverifies_cases_above_floor(self, case_repo, resolver, case_factory):
        case = case_factory("DR0999", ai_compensation_amount=82820.0)
        case_repo.list_high_awards.return_value = [case]
        verifier = MagicMock()
        verifier.verify = AsyncMock(return_value=_outcome(8282.0))
        service = EnrichmentBatchService(
            session_factory=SessionFactory(), verifier_factory=lambda: verifier, has_credentials=True
        )

        result = await service.reverify_high_awards("disputes", floor=25000, limit=10)

        case_repo.list_high_awards.assert_awaited_once_with("disputes", 25000, 10)
        assert result.processed == 1
        case_repo.save_enrichment.assert_awaited_once()
        assert case_repo.save_enrichment.call_args.args[1]["ai_compensation_amount"] == 8282.0
