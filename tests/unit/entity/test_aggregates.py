"""Unit tests for case deduplication and party aggregates."""

from datetime import date

import pytest

from tenancy_watch.services.entity.aggregates import (
    case_key,
    compute_party_aggregates,
    reference_prefix,
)

DAY = date(2024, 3, 12)


def _link(case_ref, role="respondent", source_type="disputes", case_date=DAY, amount=None):
    return {
        "role": role,
        "source_type": source_type,
        "case_ref": case_ref,
        "case_date": case_date,
        "ai_compensation_amount": amount,
    }


class TestCaseKey:

    @pytest.mark.parametrize(
        "case_ref, expected",
        [
            ("DR0100-1", "DR0100"),
            ("DR0100-2", "DR0100"),
            ("TR0042/12", "TR0042/12"),
            ("DR0924-100040", "DR0924-100040"),
            ("DR0100 and DR0101", "DR0100"),
            ("", "unknown"),
            (None, "unknown"),
        ],
    )
    def test_reference_prefix(self, case_ref, expected):
        assert reference_prefix(case_ref) == expected

    def test_key_includes_source_and_date(self):
        assert case_key("disputes", DAY, "DR0100-1") == "disputes|2024-03-12|DR0100"
        assert case_key("disputes", None, "DR0100-1") == "disputes|no-date|DR0100"


class TestPartyAggregates:

    def test_parts_of_one_decision_count_once(self):
        aggregates = compute_party_aggregates([_link("DR0100-1"), _link("DR0100-2")])

        assert aggregates.total_cases == 1
        assert aggregates.total_as_respondent == 1

    def test_full_serials_stay_distinct(self):
        aggregates = compute_party_aggregates([_link("DR0924-100040"), _link("DR0924-100041")])

        assert aggregates.total_cases == 2

    def test_numbered_enforcement_orders_stay_distinct(self):
        order_day = date(2021, 5, 1)
        aggregates = compute_party_aggregates(
            [
                _link("2021/45", source_type="enforcement_orders", case_date=order_day),
                _link("2021/46", source_type="enforcement_orders", case_date=order_day),
            ]
        )

        assert aggregates.total_cases == 2
        assert aggregates.total_enforcement_orders == 2

    def test_same_reference_on_different_dates(self):
        aggregates = compute_party_aggregates(
            [_link("DR0100-1"), _link("DR0100-1", case_date=date(2024, 6, 1))]
        )

        assert aggregates.total_cases == 2

    def test_role_and_enforcement_counts(self):
        aggregates = compute_party_aggregates(
            [
                _link("DR0100-1", role="applicant"),
                _link("DR0200", role="respondent"),
                _link("2023/1234", role="respondent", source_type="enforcement_orders"),
            ]
        )

        assert aggregates.total_cases == 3
        assert aggregates.total_as_applicant == 1
        assert aggregates.total_as_respondent == 2
        assert aggregates.total_enforcement_orders == 1

    def test_awards_take_largest_amount_per_case(self):
        aggregates = compute_party_aggregates(
            [
                _link("DR0100-1", amount=500.0),
                _link("DR0100-2", amount=800.0),
                _link("DR0300", amount=None),
            ]
        )

        assert aggregates.net_awards_against == 800.0
        assert aggregates.net_awards_for == 0.0
        assert aggregates.net_awards == -800.0

    def test_net_awards(self):
        aggregates = compute_party_aggregates(
            [
                _link("DR0100", role="applicant", amount=1500.5),
                _link("DR0200", role="respondent", amount=400.25),
            ]
        )

        assert aggregates.net_awards_for == 1500.5
        assert aggregates.net_awards_against == 400.25
        assert aggregates.net_awards == 1100.25

    def test_no_links(self):
        assert compute_party_aggregates([]).to_dict() == {
            "total_cases": 0,
            "total_as_applicant": 0,
            "total_as_respondent": 0,
            "total_enforcement_orders": 0,
            "net_awards_for": 0.0,
            "net_awards_against": 0.0,
            "net_awards": 0.0,
        }
