"""Derived party statistics.

Several physical case records can describe one logical case (a decision
published in parts, each with its own listing entry). Counting therefore
goes through ``case_key``: records with the same source, date and
reference prefix count once.
"""

import re
from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Dict, Iterable, Optional

from tenancy_watch.models.enums import PartyRole, SourceType

# "DR0100-1" / "DR0100-2" are parts of DR0100; "DR0924-100040" is a full serial.
# "/" is not a part separator: enforcement orders "2021/45" and "2021/46" differ.
_PART_SUFFIX = re.compile(r"-\d{1,2}$")


def reference_prefix(case_ref: Optional[str]) -> str:
    """First whitespace-delimited token of a reference, without a part suffix."""
    if not case_ref or not case_ref.strip():
        return "unknown"
    token = case_ref.split()[0]
    return _PART_SUFFIX.sub("", token) or token


def case_key(source_type: str, case_date: Optional[date], case_ref: Optional[str]) -> str:
    """Identity of the logical case a record belongs to."""
    day = case_date.isoformat() if case_date else "no-date"
    return f"{source_type}|{day}|{reference_prefix(case_ref)}"


@dataclass
class PartyAggregates:
    total_cases: int = 0
    total_as_applicant: int = 0
    total_as_respondent: int = 0
    total_enforcement_orders: int = 0
    net_awards_for: float = 0.0
    net_awards_against: float = 0.0
    net_awards: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def compute_party_aggregates(links: Iterable[Dict[str, Any]]) -> PartyAggregates:
    """Aggregate a party's case links over deduplicated cases.

    Each link is a mapping with ``role``, ``source_type``, ``case_ref``,
    ``case_date`` and ``ai_compensation_amount``. Monetary awards take the
    largest known amount per logical case; awards on cases where the party
    applied count "for" it, awards where it responded count "against".
    """
    cases = set()
    enforcement_cases = set()
    role_cases = {PartyRole.APPLICANT.value: set(), PartyRole.RESPONDENT.value: set()}
    awards: Dict[tuple, float] = {}

    for link in links:
        key = case_key(link["source_type"], link.get("case_date"), link.get("case_ref"))
        cases.add(key)
        if link["source_type"] == SourceType.ENFORCEMENT_ORDERS.value:
            enforcement_cases.add(key)

        role = link.get("role")
        if role in role_cases:
            role_cases[role].add(key)

            amount = link.get("ai_compensation_amount")
            if amount is not None:
                award_key = (key, role)
                awards[award_key] = max(awards.get(award_key, 0.0), float(amount))

    awards_for = sum(v for (_, role), v in awards.items() if role == PartyRole.APPLICANT.value)
    awards_against = sum(v for (_, role), v in awards.items() if role == PartyRole.RESPONDENT.value)

    return PartyAggregates(
        total_cases=len(cases),
        total_as_applicant=len(role_cases[PartyRole.APPLICANT.value]),
        total_as_respondent=len(role_cases[PartyRole.RESPONDENT.value]),
        total_enforcement_orders=len(enforcement_cases),
        net_awards_for=round(awards_for, 2),
        net_awards_against=round(awards_against, 2),
        net_awards=round(awards_for - awards_against, 2),
    )
