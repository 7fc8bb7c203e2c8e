"""Prompts for document extraction."""

from tenancy_watch.database.models import CaseRecord
from tenancy_watch.models.enums import SourceType
from tenancy_watch.schemas.extraction import DISPUTE_OUTCOMES, ENFORCEMENT_OUTCOMES

SYSTEM_PROMPT = """You are an expert legal analyst specialising in Irish residential tenancy disputes.
You analyse Residential Tenancies Board determinations, tribunal orders and court enforcement orders and extract key facts.

Rules for monetary amounts:
- Copy amounts exactly as written. Do not round, estimate, add or drop digits.
- A doubled currency symbol such as "€€8,282" is a formatting artefact and means €8,282.
- If an amount looks unusually large, re-read it.
- If you are uncertain about the amount, set compensation_amount to 0 and amount_confident to false.
- Respond with a single valid JSON object and nothing else."""


def outcomes_for(source_type: str) -> tuple:
    if source_type == SourceType.ENFORCEMENT_ORDERS.value:
        return ENFORCEMENT_OUTCOMES
    return DISPUTE_OUTCOMES


def build_extraction_prompt(case: CaseRecord) -> str:
    outcomes = ", ".join(f'"{o}"' for o in outcomes_for(case.source_type))
    kind = (
        "court enforcement order"
        if case.source_type == SourceType.ENFORCEMENT_ORDERS.value
        else "dispute determination"
    )
    return f"""Analyse this {kind} and return a JSON object with exactly these keys:

- "summary": 2-3 sentence summary of the case and its outcome
- "outcome": one of {outcomes}
- "compensation_amount": total compensation or damages awarded in euros (number, 0 if none)
- "amount_confident": true only if you are highly confident compensation_amount is exactly right
- "cost_order": any cost order amount in euros (number, 0 if none)
- "property_address": the property address, or null
- "dispute_type": category such as "Rent Arrears", "Deposit Retention", "Breach of Obligations", "Invalid Notice of Termination", "Overholding", "Anti-Social Behaviour", "Other"
- "award_items": array of {{"description": string, "amount": number}} for each component of the award
- "amount_quote": the sentence from the document that states the main award, verbatim

Reference: {case.case_ref or "Unknown"}
Parties: {case.heading or "Unknown"}

Pay particular attention to the order or determination section where awards are listed."""
