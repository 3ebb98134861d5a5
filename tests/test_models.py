"""
Tests for run-of-show, catalog, deal and stakeholder models.
"""

import pytest
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from handover_engine.models import (
    CrewItem,
    CrewStatus,
    GearStatus,
    HandoverPayload,
    Package,
    ProposalItem,
    RunOfShowDocument,
    RunOfShowUpdate,
    next_crew_status,
    next_gear_status,
    normalize_crew_items,
    normalize_gear_items,
    normalize_logistics,
)
from deal_stakeholders.errors import MissingIdentityError
from deal_stakeholders.models import (
    OrganizationIdentity,
    OrganizationWithContactIdentity,
    PersonIdentity,
    StakeholderIdentity,
    identity_columns,
    identity_from_ids,
)


class TestCrewNormalization:
    def test_crew_items_are_authoritative(self):
        doc = RunOfShowDocument.from_raw({
            'crew_roles': ['DJ', 'Lead'],
            'crew_items': [{'role': 'Tech', 'status': 'confirmed', 'entity_id': 'e1'}],
        })

        crew = normalize_crew_items(doc)

        assert [c.role for c in crew] == ['Tech']
        assert crew[0].status == CrewStatus.CONFIRMED

    def test_placeholders_from_crew_roles(self):
        doc = RunOfShowDocument.from_raw({'crew_roles': ['DJ', 'Lead'], 'crew_items': []})

        crew = normalize_crew_items(doc)

        assert [(c.role, c.status, c.entity_id) for c in crew] == [
            ('DJ', CrewStatus.REQUESTED, None),
            ('Lead', CrewStatus.REQUESTED, None),
        ]

    def test_missing_status_defaults_to_requested(self):
        doc = RunOfShowDocument.from_raw({'crew_items': [{'role': 'DJ', 'status': None}]})

        assert normalize_crew_items(doc)[0].status == CrewStatus.REQUESTED

    def test_empty_document(self):
        assert normalize_crew_items(RunOfShowDocument.from_raw(None)) == []

    def test_normalized_items_are_copies(self):
        doc = RunOfShowDocument.from_raw({'crew_items': [{'role': 'DJ'}]})

        normalize_crew_items(doc)[0].status = CrewStatus.DISPATCHED

        assert doc.crew_items[0].status == CrewStatus.REQUESTED


class TestGearAndLogisticsNormalization:
    def test_gear_items_are_authoritative(self):
        doc = RunOfShowDocument.from_raw({
            'gear_items': [{'id': 'g1', 'name': 'Speakers', 'status': 'pulled'}],
            'gear_requirements': 'Two subs',
        })

        gear = normalize_gear_items(doc)

        assert [(g.id, g.status) for g in gear] == [('g1', GearStatus.PULLED)]

    def test_placeholder_from_gear_requirements(self):
        doc = RunOfShowDocument.from_raw({'gear_requirements': 'x' * 120})

        gear = normalize_gear_items(doc)

        assert gear[0].id == 'gear-requirements'
        assert len(gear[0].name) == 80
        assert gear[0].status == GearStatus.PENDING

    def test_blank_gear_requirements(self):
        assert normalize_gear_items(RunOfShowDocument.from_raw({'gear_requirements': '   '})) == []

    def test_missing_logistics_reads_false(self):
        state = normalize_logistics(RunOfShowDocument.from_raw({}))

        assert state.model_dump() == {
            'venue_access_confirmed': False,
            'truck_loaded': False,
            'crew_confirmed': False,
        }

    def test_partial_logistics(self):
        state = normalize_logistics(RunOfShowDocument.from_raw({'logistics': {'truck_loaded': True}}))

        assert state.truck_loaded is True
        assert state.crew_confirmed is False


class TestStatusCycles:
    def test_crew_cycle(self):
        assert next_crew_status(CrewStatus.REQUESTED) == CrewStatus.CONFIRMED
        assert next_crew_status(CrewStatus.CONFIRMED) == CrewStatus.DISPATCHED
        assert next_crew_status(CrewStatus.DISPATCHED) == CrewStatus.REQUESTED

    def test_gear_cycle(self):
        assert next_gear_status(GearStatus.PENDING) == GearStatus.PULLED
        assert next_gear_status(GearStatus.PULLED) == GearStatus.LOADED
        assert next_gear_status(GearStatus.LOADED) == GearStatus.PENDING


class TestRunOfShowDocument:
    def test_unknown_sections_preserved(self):
        doc = RunOfShowDocument.from_raw({'crew_roles': ['DJ'], 'timeline': [{'at': '18:00'}]})

        assert doc.model_dump()['timeline'] == [{'at': '18:00'}]

    def test_legacy_items_filled_in(self):
        doc = RunOfShowDocument.from_raw({
            'gear_items': [{'name': 'Speakers'}, {'id': 'g7', 'name': None, 'status': 'loaded'}],
            'crew_items': [{'status': 'confirmed'}],
        })

        assert [(g.id, g.name, g.status) for g in doc.gear_items] == [
            ('gear-0', 'Speakers', GearStatus.PENDING),
            ('g7', '', GearStatus.LOADED),
        ]
        assert doc.crew_items[0].role == ''
        assert doc.malformed_sections == []

    def test_bad_section_isolated(self):
        doc = RunOfShowDocument.from_raw({
            'gear_items': 'Speakers',
            'logistics': {'truck_loaded': 'maybe'},
            'crew_roles': ['DJ'],
        })

        assert doc.malformed_sections == ['gear_items', 'logistics']
        assert doc.gear_items is None
        assert doc.logistics is None
        assert doc.crew_roles == ['DJ']


class TestRunOfShowUpdate:
    def test_only_provided_sections(self):
        update = RunOfShowUpdate.model_validate({'gearItems': [{'id': 'g1', 'name': 'Mic'}]})

        assert update.sections() == {'gear_items': [{'id': 'g1', 'name': 'Mic', 'status': 'pending'}]}

    def test_snake_case_keys(self):
        update = RunOfShowUpdate.model_validate({'venue_restrictions': 'No confetti'})

        assert update.sections() == {'venue_restrictions': 'No confetti'}

    def test_explicit_null_is_provided(self):
        update = RunOfShowUpdate.model_validate({'gearRequirements': None})

        assert update.sections() == {'gear_requirements': None}

    def test_unknown_keys_rejected(self):
        with pytest.raises(PydanticValidationError):
            RunOfShowUpdate.model_validate({'crew': []})

    def test_crew_items_dump_status_value(self):
        update = RunOfShowUpdate(crew_items=[CrewItem(role='DJ')])

        assert update.sections()['crew_items'][0]['status'] == 'requested'


class TestPackage:
    def test_service_staff_role_trimmed(self):
        pkg = Package(id='p1', category='service', definition={'ingredient_meta': {'staff_role': '  DJ '}})

        assert pkg.staff_role == 'DJ'
        assert pkg.raw_staff_role == '  DJ '

    def test_blank_staff_role(self):
        pkg = Package(id='p1', category='service', definition={'ingredient_meta': {'staff_role': '  '}})

        assert pkg.staff_role is None

    def test_non_service_has_no_staff_role(self):
        pkg = Package(id='p1', category='rental', definition={'ingredient_meta': {'staff_role': 'DJ'}})

        assert pkg.staff_role is None

    def test_definition_json_string(self):
        pkg = Package(
            id='b1',
            category='package',
            definition='{"blocks": [{"type": "line_item", "catalogId": " p1 "}, {"type": "text"}]}',
        )

        assert pkg.ingredient_ids() == ['p1']

    def test_malformed_definition(self):
        pkg = Package(id='b1', category='package', definition='{not json')

        assert pkg.definition is None
        assert pkg.ingredient_ids() == []

    def test_proposal_item_refs(self):
        item = ProposalItem(package_id='p1', origin_package_id='  ')

        assert item.package_refs() == ['p1']


class TestHandoverPayload:
    def test_camel_case(self):
        payload = HandoverPayload.model_validate({
            'name': 'Gala',
            'vitals': {
                'startAt': '2026-06-20T16:00:00Z',
                'endAt': '2026-06-20T23:00:00Z',
                'venueEntityId': 'venue-1',
            },
            'runOfShow': {'crewRoles': ['DJ']},
        })

        assert payload.vitals.venue_entity_id == 'venue-1'
        assert payload.run_of_show.sections() == {'crew_roles': ['DJ']}

    def test_wizard_snake_case(self):
        payload = HandoverPayload.model_validate({
            'vitals': {
                'start_at': '2026-06-20T16:00:00Z',
                'end_at': '2026-06-20T23:00:00Z',
                'client_entity_id': 'client-1',
            },
            'run_of_show_data': {'gear_requirements': 'Uplights'},
        })

        assert payload.vitals.client_entity_id == 'client-1'
        assert payload.run_of_show.sections() == {'gear_requirements': 'Uplights'}

    def test_vitals_required(self):
        with pytest.raises(PydanticValidationError):
            HandoverPayload.model_validate({'name': 'Gala'})


class TestStakeholderIdentity:
    def test_dual_node(self):
        identity = identity_from_ids('org-1', 'ent-1')

        assert isinstance(identity, OrganizationWithContactIdentity)
        assert identity_columns(identity) == ('org-1', 'ent-1')

    def test_organization_only(self):
        identity = identity_from_ids('org-1', '  ')

        assert isinstance(identity, OrganizationIdentity)
        assert identity_columns(identity) == ('org-1', None)

    def test_person_only(self):
        identity = identity_from_ids(None, 'ent-1')

        assert isinstance(identity, PersonIdentity)
        assert identity_columns(identity) == (None, 'ent-1')

    def test_missing_identity(self):
        with pytest.raises(MissingIdentityError):
            identity_from_ids(None, '')

    def test_union_discriminates_on_kind(self):
        adapter = TypeAdapter(StakeholderIdentity)

        identity = adapter.validate_python({'kind': 'person', 'entity_id': 'ent-1'})

        assert isinstance(identity, PersonIdentity)
        with pytest.raises(PydanticValidationError):
            adapter.validate_python({'kind': 'organization', 'entity_id': 'ent-1'})
