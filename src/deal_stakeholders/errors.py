"""
Custom exceptions for deal stakeholders.

Subclasses the base error hierarchy from handover_engine.errors so the
fail-soft boundary maps them to the same codes.
"""

from handover_engine.errors import ConflictError, ValidationError


class DuplicateStakeholderError(ConflictError):
    """The (deal, organization, person, role) connection already exists."""

    def __init__(self, context: dict | None = None):
        super().__init__('This connection is already on the deal.', context)


class MissingIdentityError(ValidationError):
    """Neither an organization nor a person was supplied."""

    def __init__(self, context: dict | None = None):
        super().__init__('Provide organizationId or entityId (or both for dual-node).', context)


class DuplicateContactError(ConflictError):
    """The email already belongs to a member of the organization."""

    def __init__(self, context: dict | None = None):
        super().__init__('This email is already linked to this organization.', context)
