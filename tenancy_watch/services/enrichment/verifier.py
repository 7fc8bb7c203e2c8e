"""Per-case document extraction with confidence gating and arbitration.

The primary model's amount is only stored when the model vouches for it
and its own itemisation adds up. Large claimed amounts get a second,
independent extraction; when the two disagree the second one wins.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from tenancy_watch.core.config import settings
from tenancy_watch.core.exceptions import AppError, ExtractionError, NoDocumentError
from tenancy_watch.core.unified_llm import ExtractionModel
from tenancy_watch.database.models import CaseRecord
from tenancy_watch.schemas.extraction import ExtractionResult, normalize_outcome
from tenancy_watch.services.enrichment.document_fetcher import DocumentFetcher, FetchedDocument
from tenancy_watch.services.enrichment.prompts import SYSTEM_PROMPT, build_extraction_prompt, outcomes_for
from tenancy_watch.utils.json_parser import parse_json_safely
from tenancy_watch.utils.logging import get_logger

LOGGER = get_logger(__name__)

NO_DOCUMENT_MESSAGE = "No PDF available"

GENERATION_CONFIG = {
    "temperature": 0.0,
    "response_mime_type": "application/json",
}


@dataclass
class GatedAmount:
    """Claimed amount and what survives the quality gates."""

    claimed: Optional[float]
    amount: Optional[float]
    reasons: List[str] = field(default_factory=list)

    @property
    def withheld(self) -> bool:
        return bool(self.reasons)


def apply_quality_gates(result: ExtractionResult, tolerance: float, case_ref: Optional[str] = None) -> GatedAmount:
    """Null the compensation amount on low confidence or an itemisation mismatch."""
    claimed = result.compensation_amount
    reasons = []

    if result.amount_confident is not True:
        reasons.append("low confidence")
        LOGGER.warning(f"Low confidence amount for {case_ref}: claimed {claimed}, withholding")

    if result.award_items:
        items_total = result.items_total()
        if (claimed or 0) > 0 and abs(items_total - claimed) > tolerance:
            reasons.append(f"items sum {items_total:.2f} != total {claimed:.2f}")
            LOGGER.warning(
                f"Amount mismatch for {case_ref}: total={claimed}, items sum={items_total}, withholding"
            )

    amount = None if reasons or claimed is None else round(claimed, 2)
    return GatedAmount(claimed=claimed, amount=amount, reasons=reasons)


@dataclass
class VerificationOutcome:
    fields: Dict[str, Any]
    model: str
    arbitrated: bool = False
    disagreement: bool = False


class EnrichmentVerifier:
    """Runs the extraction pipeline for a single case record."""

    def __init__(
        self,
        primary: ExtractionModel,
        reviewer: Optional[ExtractionModel] = None,
        fetcher: Optional[DocumentFetcher] = None,
        high_value_threshold: Optional[float] = None,
        tolerance: Optional[float] = None,
    ):
        self.primary = primary
        self.reviewer = reviewer
        self.fetcher = fetcher or DocumentFetcher()
        self.high_value_threshold = (
            settings.llm.high_value_threshold if high_value_threshold is None else high_value_threshold
        )
        self.tolerance = settings.llm.amount_tolerance if tolerance is None else tolerance

    async def extract(self, model: ExtractionModel, case: CaseRecord, document: FetchedDocument) -> ExtractionResult:
        """Send the document to ``model`` and validate its JSON answer.

        Raises:
            ExtractionError: If the response isn't a JSON object matching the schema
        """
        contents = [
            {"mime_type": "application/pdf", "data": document.data, "filename": document.filename},
            build_extraction_prompt(case),
        ]
        text = await model.generate_content(
            contents,
            system_instruction=SYSTEM_PROMPT,
            generation_config=GENERATION_CONFIG,
        )
        parsed = parse_json_safely(text)
        if not isinstance(parsed, dict):
            raise ExtractionError(f"{model.name} returned no JSON object for {case.case_ref}")
        try:
            return ExtractionResult.model_validate(parsed)
        except PydanticValidationError as e:
            raise ExtractionError(f"{model.name} returned an invalid result: {e}", original_error=e)

    async def verify(self, case: CaseRecord) -> VerificationOutcome:
        """Extract, gate and (for high values) arbitrate one case.

        Raises:
            NoDocumentError: If the case has no attached document
            DocumentUnavailableError: If no document could be downloaded
            ExtractionError / APIClientError: If the primary extraction fails
        """
        if not case.documents:
            raise NoDocumentError(NO_DOCUMENT_MESSAGE)

        document = await self.fetcher.fetch(case)

        result = await self.extract(self.primary, case, document)
        gated = apply_quality_gates(result, self.tolerance, case.case_ref)
        outcome = VerificationOutcome(fields={}, model=self.primary.name)

        # Arbitration looks at the claimed amount, even if the gates withheld it
        claimed = gated.claimed or 0.0
        if self.reviewer is not None and claimed > self.high_value_threshold:
            LOGGER.info(f"High-value claim for {case.case_ref} ({claimed}), running {self.reviewer.name}")
            try:
                review = await self.extract(self.reviewer, case, document)
            except AppError as e:
                LOGGER.warning(f"Arbitration pass failed for {case.case_ref}, keeping primary result: {e}")
            else:
                outcome.arbitrated = True
                review_claimed = review.compensation_amount or 0.0
                if abs(claimed - review_claimed) > self.tolerance:
                    LOGGER.warning(
                        f"Dual-review mismatch for {case.case_ref}: "
                        f"{self.primary.name}={claimed}, {self.reviewer.name}={review_claimed}; "
                        f"using {self.reviewer.name}"
                    )
                    outcome.disagreement = True
                    outcome.model = self.reviewer.name
                    result = review
                    gated = apply_quality_gates(review, self.tolerance, case.case_ref)
                else:
                    LOGGER.info(f"Dual-review confirmed {case.case_ref}: {claimed}")

        outcome.fields = self.build_fields(case, result, gated, outcome.model)
        return outcome

    @staticmethod
    def build_fields(case: CaseRecord, result: ExtractionResult, gated: GatedAmount, model: str) -> Dict[str, Any]:
        """Columns written back onto the case record."""
        return {
            "ai_summary": result.summary,
            "ai_outcome": normalize_outcome(result.outcome, outcomes_for(case.source_type)),
            "ai_compensation_amount": gated.amount,
            "ai_cost_order": round(result.cost_order, 2) if result.cost_order is not None else None,
            "ai_property_address": result.property_address,
            "ai_dispute_type": result.dispute_type,
            "ai_award_items": [item.model_dump() for item in result.award_items],
            "ai_amount_quote": result.amount_quote,
            "ai_model": model,
            "ai_processed_at": datetime.now(timezone.utc),
            "ai_error": None,
        }


def failure_fields(message: str) -> Dict[str, Any]:
    """Columns recording a failed enrichment; the case counts as processed."""
    return {
        "ai_error": message[:1000],
        "ai_processed_at": datetime.now(timezone.utc),
    }
