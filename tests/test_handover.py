"""
Tests for the HandoverOrchestrator.

Tests cover:
- Idempotency and the status guard
- Project resolution (explicit, single, none, several)
- Default vitals and naming
- Crew role union and synthesized crew slots
- Contract seeding and reading back
- Concurrent handovers and commit failures
"""

from datetime import date, datetime, timezone

import pytest

from fakes import OTHER_WORKSPACE_ID, WORKSPACE_ID, ts

from handover_engine.errors import PostgresQueryError
from handover_engine.pipeline import build_crew_sections


def _payload(**overrides):
    payload = {
        'name': 'Smith Wedding Reception',
        'vitals': {
            'startAt': '2026-06-20T16:00:00+00:00',
            'endAt': '2026-06-20T23:30:00+00:00',
            'venueEntityId': 'venue-1',
            'clientEntityId': 'client-1',
        },
        'runOfShow': {
            'crewRoles': ['MC'],
            'gearRequirements': 'Two tops',
        },
    }
    payload.update(overrides)
    return payload


class TestBuildCrewSections:
    def test_union_and_synthesis(self):
        document, roles = build_crew_sections(
            {'crew_roles': ['MC', ' DJ '], 'crew_items': [{'role': 'MC', 'status': 'confirmed'}]},
            ['DJ', 'Lighting Tech'],
        )

        assert roles == ['MC', 'DJ', 'Lighting Tech']
        assert document['crew_roles'] == roles
        assert [(c['role'], c['status']) for c in document['crew_items']] == [
            ('MC', 'confirmed'),
            ('DJ', 'requested'),
            ('Lighting Tech', 'requested'),
        ]

    def test_no_roles_leaves_document_alone(self):
        document, roles = build_crew_sections({'gear_requirements': 'x'}, [])

        assert roles == []
        assert document == {'gear_requirements': 'x'}


class TestIdempotencyAndGuards:
    @pytest.mark.asyncio
    async def test_already_linked_returns_existing(self, repo, orchestrator):
        production = repo.add_production({})
        deal = repo.add_deal()
        repo.link(deal, production)

        result = await orchestrator.handover(WORKSPACE_ID, deal.id)

        assert result.success is True
        assert result.data.event_id == production.id
        assert result.data.created is False
        assert repo.commits == []

    @pytest.mark.asyncio
    async def test_second_call_returns_same_production(self, repo, orchestrator):
        deal = repo.add_deal()

        first = await orchestrator.run(WORKSPACE_ID, deal.id)
        second = await orchestrator.run(WORKSPACE_ID, deal.id)

        assert first.created is True
        assert second.created is False
        assert second.event_id == first.event_id
        assert len(repo.productions) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize('status', ['won', 'lost'])
    async def test_status_guard(self, repo, orchestrator, status):
        deal = repo.add_deal(status=status)

        result = await orchestrator.handover(WORKSPACE_ID, deal.id)

        assert result.error_code == 'validation'
        assert result.error.message == 'Deal is not ready for handover.'
        assert repo.productions == {}

    @pytest.mark.asyncio
    async def test_missing_deal(self, orchestrator):
        result = await orchestrator.handover(WORKSPACE_ID, 'deal-missing')

        assert result.error_code == 'not_found'
        assert result.error.message == 'Deal not found.'

    @pytest.mark.asyncio
    async def test_invalid_payload(self, repo, orchestrator):
        deal = repo.add_deal()

        result = await orchestrator.handover(WORKSPACE_ID, deal.id, {'name': 'no vitals'})

        assert result.error_code == 'validation'

    @pytest.mark.asyncio
    async def test_end_before_start(self, repo, orchestrator):
        deal = repo.add_deal()
        payload = _payload(vitals={'startAt': '2026-06-20T20:00:00Z', 'endAt': '2026-06-20T10:00:00Z'})

        result = await orchestrator.handover(WORKSPACE_ID, deal.id, payload)

        assert result.error_code == 'validation'
        assert repo.commits == []


class TestProjects:
    @pytest.mark.asyncio
    async def test_creates_default_project(self, repo, orchestrator):
        deal = repo.add_deal()

        outcome = await orchestrator.run(WORKSPACE_ID, deal.id)

        assert outcome.project_created is True
        assert [(p.id, p.name, p.status) for p in repo.projects] == [(outcome.project_id, 'Production', 'lead')]

    @pytest.mark.asyncio
    async def test_uses_single_project(self, repo, orchestrator):
        project = repo.add_project()
        deal = repo.add_deal()

        outcome = await orchestrator.run(WORKSPACE_ID, deal.id)

        assert outcome.project_id == project.id
        assert outcome.project_created is False
        assert len(repo.projects) == 1

    @pytest.mark.asyncio
    async def test_several_projects_is_configuration_error(self, repo, orchestrator):
        repo.add_project(name='A')
        repo.add_project(name='B')
        deal = repo.add_deal()

        result = await orchestrator.handover(WORKSPACE_ID, deal.id)

        assert result.error_code == 'configuration'
        assert repo.productions == {}

    @pytest.mark.asyncio
    async def test_explicit_project(self, repo, orchestrator):
        repo.add_project(name='A')
        chosen = repo.add_project(name='B')
        deal = repo.add_deal()

        outcome = await orchestrator.run(WORKSPACE_ID, deal.id, _payload(projectId=chosen.id))

        assert outcome.project_id == chosen.id

    @pytest.mark.asyncio
    async def test_explicit_project_must_exist(self, repo, orchestrator):
        deal = repo.add_deal()

        result = await orchestrator.handover(WORKSPACE_ID, deal.id, _payload(projectId='proj-nope'))

        assert result.error_code == 'not_found'


class TestProductionContents:
    @pytest.mark.asyncio
    async def test_defaults_without_payload(self, repo, orchestrator):
        deal = repo.add_deal(title='   ', proposed_date=date(2026, 7, 4))

        outcome = await orchestrator.run(WORKSPACE_ID, deal.id)

        production = repo.productions[outcome.event_id]
        assert production.name == 'Untitled Production'
        assert production.start_at == datetime(2026, 7, 4, 8, tzinfo=timezone.utc)
        assert production.end_at == datetime(2026, 7, 4, 18, tzinfo=timezone.utc)
        assert production.venue_entity_id is None

    @pytest.mark.asyncio
    async def test_title_is_trimmed(self, repo, orchestrator):
        deal = repo.add_deal(title='  Gala Night ')

        outcome = await orchestrator.run(WORKSPACE_ID, deal.id)

        assert repo.productions[outcome.event_id].name == 'Gala Night'

    @pytest.mark.asyncio
    async def test_payload_vitals_and_client(self, repo, orchestrator):
        project = repo.add_project()
        deal = repo.add_deal()

        outcome = await orchestrator.run(WORKSPACE_ID, deal.id, _payload())

        production = repo.productions[outcome.event_id]
        assert production.name == 'Smith Wedding Reception'
        assert production.start_at == ts(20, 16)
        assert production.venue_entity_id == 'venue-1'
        assert repo.projects[0].client_entity_id == 'client-1'
        assert repo.projects[0].id == project.id
        assert production.run_of_show_data['gear_requirements'] == 'Two tops'

    @pytest.mark.asyncio
    async def test_deal_marked_won_and_linked(self, repo, orchestrator):
        deal = repo.add_deal(status='contract_sent')

        outcome = await orchestrator.run(WORKSPACE_ID, deal.id)

        assert repo.deals[deal.id].status == 'won'
        assert repo.deals[deal.id].event_id == outcome.event_id

    @pytest.mark.asyncio
    async def test_crew_roles_union(self, repo, orchestrator):
        deal = repo.add_deal()
        dj = repo.add_package('service', staff_role='DJ')
        mc = repo.add_package('service', staff_role='MC')
        repo.add_proposal(deal, [dj.id, mc.id])

        outcome = await orchestrator.run(WORKSPACE_ID, deal.id, _payload())

        stored = repo.productions[outcome.event_id].run_of_show_data
        assert outcome.crew_roles == ['MC', 'DJ']
        assert stored['crew_roles'] == ['MC', 'DJ']
        assert [c['role'] for c in stored['crew_items']] == ['MC', 'DJ']
        assert all(c['status'] == 'requested' for c in stored['crew_items'])

    @pytest.mark.asyncio
    async def test_no_roles_no_crew_sections(self, repo, orchestrator):
        deal = repo.add_deal()

        outcome = await orchestrator.run(WORKSPACE_ID, deal.id)

        assert repo.productions[outcome.event_id].run_of_show_data == {}
        assert outcome.crew_roles == []


class TestContract:
    @pytest.mark.asyncio
    async def test_seeded_from_accepted_proposal(self, repo, orchestrator):
        deal = repo.add_deal()
        repo.add_proposal(deal, [], status='accepted', accepted_at=ts(3, 12))

        outcome = await orchestrator.run(WORKSPACE_ID, deal.id)

        assert outcome.contract_seeded is True
        assert repo.contracts == [{
            'id': repo.commits[0].contract_id,
            'workspace_id': WORKSPACE_ID,
            'event_id': outcome.event_id,
            'status': 'signed',
            'signed_at': ts(3, 12),
            'pdf_url': None,
        }]

    @pytest.mark.asyncio
    async def test_not_seeded_without_acceptance(self, repo, orchestrator):
        deal = repo.add_deal()
        repo.add_proposal(deal, [], status='sent')

        outcome = await orchestrator.run(WORKSPACE_ID, deal.id)

        assert outcome.contract_seeded is False
        assert repo.contracts == []

    @pytest.mark.asyncio
    async def test_seeded_contract_is_readable(self, repo, orchestrator):
        deal = repo.add_deal()
        repo.add_proposal(deal, [], status='accepted', accepted_at=ts(3, 12))
        outcome = await orchestrator.run(WORKSPACE_ID, deal.id)

        result = await orchestrator.get_contract_for_event(WORKSPACE_ID, outcome.event_id)

        assert result.success is True
        assert result.data.model_dump() == {'status': 'signed', 'signed_at': ts(3, 12), 'pdf_url': None}

    @pytest.mark.asyncio
    async def test_no_contract(self, repo, orchestrator):
        production = repo.add_production()

        result = await orchestrator.get_contract_for_event(WORKSPACE_ID, production.id)

        assert result.success is True
        assert result.data is None

    @pytest.mark.asyncio
    async def test_missing_contracts_table_reads_none(self, repo, orchestrator):
        production = repo.add_production()
        repo.contracts_missing = True

        assert await orchestrator.contract_for(WORKSPACE_ID, production.id) is None

    @pytest.mark.asyncio
    async def test_contract_of_other_workspace_production(self, repo, orchestrator):
        production = repo.add_production(workspace_id=OTHER_WORKSPACE_ID)

        result = await orchestrator.get_contract_for_event(WORKSPACE_ID, production.id)

        assert result.error_code == 'not_found'



class TestConcurrencyAndFailure:
    @pytest.mark.asyncio
    async def test_lost_race_returns_winner(self, repo, orchestrator):
        deal = repo.add_deal()
        winner = repo.add_production({})
        repo.before_commit = lambda plan: repo.link(deal, winner)

        outcome = await orchestrator.run(WORKSPACE_ID, deal.id)

        assert outcome.created is False
        assert outcome.event_id == winner.id
        assert list(repo.productions) == [winner.id]

    @pytest.mark.asyncio
    async def test_commit_failure_is_partial_failure(self, repo, orchestrator):
        deal = repo.add_deal()
        repo.commit_error = PostgresQueryError('insert failed')

        result = await orchestrator.handover(WORKSPACE_ID, deal.id)

        assert result.success is False
        assert result.error_code == 'partial_failure'
        assert result.error.message == 'Handover failed; no changes were saved'
        assert repo.productions == {}
        assert repo.deals[deal.id].event_id is None
        assert repo.projects == []
