"""
Catalog, proposal and crew-role diagnostic models.

A catalog Package is either a leaf (service, rental, talent, ...) or a
bundle (category 'package') whose definition holds content blocks. Blocks
of type 'line_item' point at other packages via catalogId ("ingredients").
Service packages carry an optional staff role under
definition.ingredient_meta.staff_role.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class PackageCategory(str, Enum):
    """Catalog entry categories."""

    PACKAGE = 'package'  # bundle
    SERVICE = 'service'
    RENTAL = 'rental'
    TALENT = 'talent'
    RETAIL_SALE = 'retail_sale'
    FEE = 'fee'


class ProposalStatus(str, Enum):
    DRAFT = 'draft'
    SENT = 'sent'
    VIEWED = 'viewed'
    ACCEPTED = 'accepted'


# Proposals the client has seen or signed govern crew derivation
GOVERNING_PROPOSAL_STATUSES = frozenset({
    ProposalStatus.ACCEPTED.value,
    ProposalStatus.SENT.value,
    ProposalStatus.VIEWED.value,
})


class Package(BaseModel):
    """A catalog entry as loaded from the packages table."""

    id: str
    name: str | None = None
    category: str | None = None
    definition: dict[str, Any] | None = None

    @field_validator('definition', mode='before')
    @classmethod
    def _parse_definition(cls, v: Any) -> Any:
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
            except ValueError:
                return None
            return parsed if isinstance(parsed, dict) else None
        if v is not None and not isinstance(v, dict):
            return None
        return v

    @property
    def is_service(self) -> bool:
        return self.category == PackageCategory.SERVICE.value

    @property
    def is_bundle(self) -> bool:
        return self.category == PackageCategory.PACKAGE.value

    @property
    def raw_staff_role(self) -> str | None:
        """staff_role exactly as stored (may be blank)."""
        meta = (self.definition or {}).get('ingredient_meta')
        if not isinstance(meta, dict):
            return None
        role = meta.get('staff_role')
        return role if isinstance(role, str) else None

    @property
    def staff_role(self) -> str | None:
        """Trimmed staff role for service packages; None when unset or blank."""
        if not self.is_service:
            return None
        role = self.raw_staff_role
        if role and role.strip():
            return role.strip()
        return None

    def ingredient_ids(self) -> list[str]:
        """catalogId of every line_item block, for bundles only."""
        if not self.is_bundle:
            return []
        blocks = (self.definition or {}).get('blocks')
        if not isinstance(blocks, list):
            return []
        ids: list[str] = []
        for block in blocks:
            if not isinstance(block, dict) or block.get('type') != 'line_item':
                continue
            catalog_id = block.get('catalogId')
            if isinstance(catalog_id, str) and catalog_id.strip():
                ids.append(catalog_id.strip())
        return ids


class Proposal(BaseModel):
    id: str
    deal_id: str
    status: str
    created_at: datetime | None = None
    accepted_at: datetime | None = None


class ProposalItem(BaseModel):
    id: str | None = None
    package_id: str | None = None
    origin_package_id: str | None = None

    def package_refs(self) -> list[str]:
        """Non-blank package_id / origin_package_id values."""
        return [
            ref for ref in (self.package_id, self.origin_package_id)
            if isinstance(ref, str) and ref.strip()
        ]


# =============================================================================
# Diagnostics
# =============================================================================


class DiagnosticStep(str, Enum):
    """Where the crew-role walk stopped."""

    NO_PROPOSAL = 'no_proposal'
    NO_ITEMS = 'no_items'
    NO_PACKAGE_IDS = 'no_package_ids'
    NO_PACKAGES_FOUND = 'no_packages_found'
    NO_ROLES = 'no_roles'
    OK = 'ok'


class PackageSummary(BaseModel):
    """A package observed during the walk (name, category, staff role if service)."""

    name: str
    category: str
    staff_role: str | None = None


class CrewRolesDiagnostic(BaseModel):
    """Explains why crew roles were, or were not, found for a deal."""

    step: DiagnosticStep
    proposal_id: str | None = None
    proposal_status: str | None = None
    item_count: int | None = None
    package_id_count: int | None = None
    packages: list[PackageSummary] | None = None
    ingredients: list[PackageSummary] | None = None
    unexpanded_bundles: list[PackageSummary] | None = Field(
        default=None,
        description='Bundles reached at the depth limit whose contents were not walked',
    )
    roles_found: list[str] | None = None
