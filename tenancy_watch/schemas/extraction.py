"""Structured result returned by the document extraction models."""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

DISPUTE_OUTCOMES = ("Upheld", "Partially Upheld", "Dismissed", "Withdrawn", "Settled", "Other")
ENFORCEMENT_OUTCOMES = ("Order Granted", "Order Refused", "Adjourned", "Struck Out", "Withdrawn", "Settled", "Other")


def _to_number(value) -> Optional[float]:
    """Coerce model output like "€8,282" or "1 200.50" into a float."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = "".join(ch for ch in str(value) if ch.isdigit() or ch in ".-")
    try:
        return float(cleaned) if cleaned else None
    except ValueError:
        return None


class AwardItem(BaseModel):
    """One component of an itemised award."""

    description: Optional[str] = None
    amount: Optional[float] = None

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, value):
        return _to_number(value)


class ExtractionResult(BaseModel):
    """JSON object the extraction prompt asks the model to return."""

    summary: Optional[str] = Field(None, description="2-3 sentence summary of the dispute and outcome")
    outcome: Optional[str] = Field(None, description="Outcome category")
    compensation_amount: Optional[float] = Field(None, description="Total compensation awarded in euros")
    amount_confident: Optional[bool] = Field(None, description="Model is confident the amount is exact")
    cost_order: Optional[float] = Field(None, description="Cost order amount in euros")
    property_address: Optional[str] = None
    dispute_type: Optional[str] = None
    award_items: List[AwardItem] = Field(default_factory=list)
    amount_quote: Optional[str] = Field(None, description="Verbatim sentence stating the award")

    @field_validator("compensation_amount", "cost_order", mode="before")
    @classmethod
    def parse_money(cls, value):
        return _to_number(value)

    @field_validator("award_items", mode="before")
    @classmethod
    def parse_items(cls, value):
        return value if isinstance(value, list) else []

    def items_total(self) -> float:
        return sum(item.amount or 0.0 for item in self.award_items)


def normalize_outcome(outcome: Optional[str], allowed: tuple) -> Optional[str]:
    """Match an outcome case-insensitively against ``allowed``; unknown values become "Other"."""
    if not outcome:
        return None
    for value in allowed:
        if outcome.strip().lower() == value.lower():
            return value
    return "Other"
