"""
Deal Stakeholders

Parties connected to a deal (bill-to, planner, venue contact, vendor) as
organization, person or organization+contact identities, plus the roster
lookups used to pick a point of contact or staff a crew role. Builds on
the handover_engine client, error hierarchy and fail-soft results.
"""

__version__ = '0.1.0'

from .errors import DuplicateContactError, DuplicateStakeholderError, MissingIdentityError
from .models import (
    DealClientContext,
    InternalTeamMember,
    OrganizationIdentity,
    OrganizationWithContactIdentity,
    OrgRosterContact,
    PersonIdentity,
    StakeholderDisplay,
    StakeholderIdentity,
    StakeholderRole,
)
from .repository import StakeholderRepository
from .resolver import StakeholderResolver
from .roster import OrgRoster

__all__ = [
    # Version
    '__version__',
    # Errors
    'DuplicateContactError',
    'DuplicateStakeholderError',
    'MissingIdentityError',
    # Models
    'DealClientContext',
    'InternalTeamMember',
    'OrganizationIdentity',
    'OrganizationWithContactIdentity',
    'OrgRosterContact',
    'PersonIdentity',
    'StakeholderDisplay',
    'StakeholderIdentity',
    'StakeholderRole',
    # Services
    'StakeholderRepository',
    'StakeholderResolver',
    'OrgRoster',
]
