"""
Data models for deal stakeholders.
"""

from .stakeholder import (
    ClientContact,
    ClientOrganization,
    ContactRecord,
    DealClientContext,
    DealClientRefs,
    EntityRecord,
    InternalTeamMember,
    OrganizationIdentity,
    OrganizationRecord,
    OrganizationWithContactIdentity,
    OrgMemberRecord,
    OrgRosterContact,
    PersonIdentity,
    StakeholderDisplay,
    StakeholderIdentity,
    StakeholderRole,
    StakeholderRow,
    identity_columns,
    identity_from_ids,
)

__all__ = [
    'ClientContact',
    'ClientOrganization',
    'ContactRecord',
    'DealClientContext',
    'DealClientRefs',
    'EntityRecord',
    'InternalTeamMember',
    'OrganizationIdentity',
    'OrganizationRecord',
    'OrganizationWithContactIdentity',
    'OrgMemberRecord',
    'OrgRosterContact',
    'PersonIdentity',
    'StakeholderDisplay',
    'StakeholderIdentity',
    'StakeholderRole',
    'StakeholderRow',
    'identity_columns',
    'identity_from_ids',
]
