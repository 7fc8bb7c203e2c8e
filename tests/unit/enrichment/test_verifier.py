"""Unit tests for EnrichmentVerifier gating and arbitration."""

import json
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from tenancy_watch.core.exceptions import APIClientError, ExtractionError, NoDocumentError
from tenancy_watch.schemas.extraction import ExtractionResult
from tenancy_watch.services.enrichment.document_fetcher import FetchedDocument
from tenancy_watch.services.enrichment.verifier import EnrichmentVerifier, apply_quality_gates


def _answer(amount, confident=True, items=None, outcome="Upheld", **extra) -> str:
    body = {
        "summary": "The tenant's claim for deposit retention was upheld.",
        "outcome": outcome,
        "compensation_amount": amount,
        "amount_confident": confident,
        "cost_order": 0,
        "property_address": "1 Main Street, Cork",
        "dispute_type": "Deposit Retention",
        "award_items": items if items is not None else [],
        "amount_quote": f"The Landlord shall pay the sum of €{amount}.",
    }
    body.update(extra)
    return json.dumps(body)


def _model(name: str, *answers) -> MagicMock:
    model = MagicMock()
    model.name = name
    model.generate_content = AsyncMock(side_effect=list(answers))
    return model


@pytest.fixture
def fetcher(sample_pdf_content):
    fetcher = MagicMock()
    fetcher.fetch = AsyncMock(
        return_value=FetchedDocument(data=sample_pdf_content, url="https://rtb.ie/x.pdf", filename="x.pdf")
    )
    return fetcher


def _verifier(primary, fetcher, reviewer=None):
    return EnrichmentVerifier(
        primary=primary,
        reviewer=reviewer,
        fetcher=fetcher,
        high_value_threshold=20000,
        tolerance=1.0,
    )


class TestQualityGates:

    def test_confident_consistent_amount_is_kept(self):
        result = ExtractionResult(
            compensation_amount=1500,
            amount_confident=True,
            award_items=[{"description": "Deposit", "amount": 1000}, {"description": "Damages", "amount": 500}],
        )

        gated = apply_quality_gates(result, tolerance=1.0)

        assert gated.amount == 1500.0
        assert gated.withheld is False

    @pytest.mark.parametrize("confident", [False, None])
    def test_unconfident_amount_is_withheld(self, confident):
        result = ExtractionResult(compensation_amount=1500, amount_confident=confident)

        gated = apply_quality_gates(result, tolerance=1.0)

        assert gated.amount is None
        assert gated.claimed == 1500.0

    def test_itemisation_mismatch_is_withheld(self):
        result = ExtractionResult(
            compensation_amount=8282,
            amount_confident=True,
            award_items=[{"description": "Rent arrears", "amount": 828.2}],
        )

        gated = apply_quality_gates(result, tolerance=1.0)

        assert gated.amount is None
        assert "items sum" in gated.reasons[0]

    def test_difference_within_tolerance_is_accepted(self):
        result = ExtractionResult(
            compensation_amount=1000.5,
            amount_confident=True,
            award_items=[{"description": "Damages", "amount": 1000}],
        )

        assert apply_quality_gates(result, tolerance=1.0).amount == 1000.5

    def test_currency_strings_are_parsed(self):
        result = ExtractionResult.model_validate(
            {"compensation_amount": "€€8,282", "amount_confident": True}
        )

        assert result.compensation_amount == 8282.0


class TestVerify:

    @pytest.mark.asyncio
    async def test_case_without_documents(self, fetcher, case_factory):
        verifier = _verifier(_model("gemini:flash"), fetcher)

        with pytest.raises(NoDocumentError):
            await verifier.verify(case_factory(documents=[]))

        fetcher.fetch.assert_not_called()

    @pytest.mark.asyncio
    async def test_low_value_uses_primary_only(self, fetcher, case_factory):
        primary = _model("gemini:flash", _answer(1200))
        reviewer = _model("openrouter:gpt-4o")
        verifier = _verifier(primary, fetcher, reviewer)

        outcome = await verifier.verify(case_factory())

        assert outcome.fields["ai_compensation_amount"] == 1200.0
        assert outcome.fields["ai_outcome"] == "Upheld"
        assert outcome.fields["ai_model"] == "gemini:flash"
        assert outcome.fields["ai_error"] is None
        assert outcome.fields["ai_processed_at"] is not None
        assert outcome.arbitrated is False
        reviewer.generate_content.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_outcome_maps_to_other(self, fetcher, case_factory):
        verifier = _verifier(_model("gemini:flash", _answer(0, outcome="Partly granted")), fetcher)

        outcome = await verifier.verify(case_factory())

        assert outcome.fields["ai_outcome"] == "Other"

    @pytest.mark.asyncio
    async def test_reviewer_supersedes_on_disagreement(self, fetcher, case_factory, caplog):
        primary = _model("gemini:flash", _answer(82820))
        reviewer = _model("openrouter:gpt-4o", _answer(8282))
        verifier = _verifier(primary, fetcher, reviewer)

        with caplog.at_level(logging.WARNING):
            outcome = await verifier.verify(case_factory(case_ref="DR0555-1"))

        assert outcome.disagreement is True
        assert outcome.arbitrated is True
        assert outcome.fields["ai_compensation_amount"] == 8282.0
        assert outcome.fields["ai_model"] == "openrouter:gpt-4o"
        assert any("Dual-review mismatch for DR0555-1" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_agreeing_reviewer_keeps_primary(self, fetcher, case_factory):
        primary = _model("gemini:flash", _answer(25000))
        reviewer = _model("openrouter:gpt-4o", _answer(25000.5))
        verifier = _verifier(primary, fetcher, reviewer)

        outcome = await verifier.verify(case_factory())

        assert outcome.arbitrated is True
        assert outcome.disagreement is False
        assert outcome.fields["ai_compensation_amount"] == 25000.0
        assert outcome.fields["ai_model"] == "gemini:flash"

    @pytest.mark.asyncio
    async def test_arbitration_uses_claimed_amount_even_when_withheld(self, fetcher, case_factory):
        primary = _model("gemini:flash", _answer(50000, confident=False))
        reviewer = _model("openrouter:gpt-4o", _answer(5000))
        verifier = _verifier(primary, fetcher, reviewer)

        outcome = await verifier.verify(case_factory())

        reviewer.generate_content.assert_awaited_once()
        assert outcome.fields["ai_compensation_amount"] == 5000.0

    @pytest.mark.asyncio
    async def test_threshold_is_exclusive(self, fetcher, case_factory):
        primary = _model("gemini:flash", _answer(20000))
        reviewer = _model("openrouter:gpt-4o")
        verifier = _verifier(primary, fetcher, reviewer)

        await verifier.verify(case_factory())

        reviewer.generate_content.assert_not_called()

    @pytest.mark.asyncio
    async def test_reviewer_failure_keeps_primary(self, fetcher, case_factory):
        primary = _model("gemini:flash", _answer(30000))
        reviewer = _model("openrouter:gpt-4o", APIClientError("rate limited"))
        verifier = _verifier(primary, fetcher, reviewer)

        outcome = await verifier.verify(case_factory())

        assert outcome.arbitrated is False
        assert outcome.fields["ai_compensation_amount"] == 30000.0

    @pytest.mark.asyncio
    async def test_non_json_answer_is_an_extraction_error(self, fetcher, case_factory):
        verifier = _verifier(_model("gemini:flash", "I could not read this document."), fetcher)

        with pytest.raises(ExtractionError):
            await verifier.verify(case_factory())

    @pytest.mark.asyncio
    async def test_fenced_json_is_accepted(self, fetcher, case_factory):
        answer = "```json\n" + _answer(750) + "\n```"
        verifier = _verifier(_model("gemini:flash", answer), fetcher)

        outcome = await verifier.verify(case_factory())

        assert outcome.fields["ai_compensation_amount"] == 750.0

    @pytest.mark.asyncio
    async def test_document_is_sent_inline(self, fetcher, case_factory, sample_pdf_content):
        primary = _model("gemini:flash", _answer(100))
        verifier = _verifier(primary, fetcher)

        await verifier.verify(case_factory())

        contents = primary.generate_content.call_args.args[0]
        assert contents[0]["mime_type"] == "application/pdf"
        assert contents[0]["data"] == sample_pdf_content
        assert "DR0100-1" in contents[1]
