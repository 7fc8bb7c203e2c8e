"""Unit tests for EntityResolver with mocked repositories."""

import uuid
from datetime import date
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from tenancy_watch.services.entity.resolver import EntityResolver


@pytest.fixture
def party_repo():
    repo = MagicMock()

    async def get_or_create(name, normalized_name, party_type):
        return SimpleNamespace(id=uuid.uuid5(uuid.NAMESPACE_OID, normalized_name), name=name)

    repo.get_or_create = AsyncMock(side_effect=get_or_create)
    repo.get_case_links = AsyncMock(return_value=[])
    repo.update_aggregates = AsyncMock()
    repo.ids_for_cases = AsyncMock(return_value=[])
    repo.list_ids = AsyncMock(return_value=[])
    return repo


@pytest.fixture
def link_repo():
    repo = MagicMock()
    repo.link = AsyncMock(return_value=True)
    return repo


@pytest.fixture
def resolver(party_repo, link_repo):
    return EntityResolver(AsyncMock(), party_repo=party_repo, link_repo=link_repo)


class TestResolveParty:

    @pytest.mark.asyncio
    async def test_normalizes_name_and_maps_role(self, resolver, party_repo):
        await resolver.resolve_party("  Acme   Lettings Ltd ", "Landlords")

        party_repo.get_or_create.assert_awaited_once_with(
            name="Acme Lettings Ltd",
            normalized_name="acme lettings ltd",
            party_type="Landlord",
        )

    @pytest.mark.asyncio
    async def test_unknown_role(self, resolver, party_repo):
        await resolver.resolve_party("Residential Tenancies Board", None)

        assert party_repo.get_or_create.call_args.kwargs["party_type"] == "Unknown"

    @pytest.mark.asyncio
    async def test_blank_name_is_skipped(self, resolver, party_repo):
        assert await resolver.resolve_party("   ", "Tenant") is None
        party_repo.get_or_create.assert_not_called()


class TestResolveCaseParties:

    @pytest.mark.asyncio
    async def test_links_both_sides_and_recomputes(self, resolver, party_repo, link_repo, case_factory):
        case = case_factory()

        party_ids = await resolver.resolve_case_parties(case)

        assert len(party_ids) == 2
        roles = [(c.kwargs["role"], c.kwargs["party_type"]) for c in link_repo.link.call_args_list]
        assert roles == [("applicant", "Tenant"), ("respondent", "Landlord")]
        assert all(c.kwargs["case_id"] == case.id for c in link_repo.link.call_args_list)
        assert party_repo.update_aggregates.await_count == 2

    @pytest.mark.asyncio
    async def test_missing_respondent(self, resolver, link_repo, case_factory):
        case = case_factory(respondent_name=None, respondent_role=None)

        party_ids = await resolver.resolve_case_parties(case)

        assert len(party_ids) == 1
        link_repo.link.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_same_party_on_both_sides_recomputed_once(self, resolver, party_repo, case_factory):
        case = case_factory(applicant_name="Acme Lettings Ltd", respondent_name="ACME LETTINGS LTD")

        party_ids = await resolver.resolve_case_parties(case)

        assert party_ids[0] == party_ids[1]
        party_repo.update_aggregates.assert_awaited_once()


class TestRecompute:

    @pytest.mark.asyncio
    async def test_writes_aggregates_from_links(self, resolver, party_repo):
        party_id = uuid.uuid4()
        day = date(2024, 3, 12)
        party_repo.get_case_links.return_value = [
            {"role": "respondent", "source_type": "disputes", "case_ref": "DR0100-1",
             "case_date": day, "ai_compensation_amount": 1200.0},
            {"role": "respondent", "source_type": "disputes", "case_ref": "DR0100-2",
             "case_date": day, "ai_compensation_amount": None},
        ]

        aggregates = await resolver.recompute_party(party_id)

        assert aggregates.total_cases == 1
        kwargs = party_repo.update_aggregates.call_args.kwargs
        assert party_repo.update_aggregates.call_args.args == (party_id,)
        assert kwargs["total_cases"] == 1
        assert kwargs["net_awards_against"] == 1200.0
        assert kwargs["net_awards"] == -1200.0

    @pytest.mark.asyncio
    async def test_recompute_for_cases(self, resolver, party_repo):
        party_repo.ids_for_cases.return_value = [uuid.uuid4(), uuid.uuid4(), uuid.uuid4()]

        updated = await resolver.recompute_for_cases([uuid.uuid4()])

        assert updated == 3
        assert party_repo.update_aggregates.await_count == 3
