"""
Catalog expander.

Resolves a deal's governing proposal into the flat, de-duplicated set of
staff roles its catalog items imply:

1. Pick the governing proposal (latest accepted/sent/viewed, else latest)
2. Collect package_id / origin_package_id from its items
3. Walk the catalog breadth-first: service packages contribute their
   staff_role, bundles contribute their line_item ingredients
4. Stop descending at max_bundle_depth (default 1 hop below the proposal);
   bundles reached at the limit are reported, not expanded

A visited-id set guards against cyclic bundle references, so raising the
depth limit can never loop.
"""

from dataclasses import dataclass, field

import structlog

from ..config import config
from ..models.catalog import (
    GOVERNING_PROPOSAL_STATUSES,
    CrewRolesDiagnostic,
    DiagnosticStep,
    Package,
    PackageSummary,
    Proposal,
)
from ..repository import ProductionRepository
from ..results import ActionResult, fail_soft
from ..utils import unique_in_order

logger = structlog.get_logger(__name__)


def select_governing_proposal(proposals: list[Proposal]) -> Proposal | None:
    """
    Pick the proposal that governs crew derivation.

    Args:
        proposals: The deal's proposals, newest first

    Returns:
        Newest proposal the client has seen or signed, else the newest of
        any status, else None
    """
    for proposal in proposals:
        if proposal.status in GOVERNING_PROPOSAL_STATUSES:
            return proposal
    return proposals[0] if proposals else None


def _summarize(package: Package) -> PackageSummary:
    return PackageSummary(
        name=package.name or 'Untitled',
        category=package.category or '',
        staff_role=package.raw_staff_role if package.is_service else None,
    )


@dataclass
class CatalogWalk:
    """Everything observed while expanding one proposal."""

    proposal: Proposal | None = None
    item_count: int = 0
    package_ids: list[str] = field(default_factory=list)
    packages: list[Package] = field(default_factory=list)
    ingredients: list[Package] = field(default_factory=list)
    unexpanded_bundles: list[Package] = field(default_factory=list)
    roles: list[str] = field(default_factory=list)

    def to_diagnostic(self) -> CrewRolesDiagnostic:
        if self.proposal is None:
            return CrewRolesDiagnostic(step=DiagnosticStep.NO_PROPOSAL)

        base = {
            'proposal_id': self.proposal.id,
            'proposal_status': self.proposal.status,
            'item_count': self.item_count,
        }
        if not self.package_ids:
            step = DiagnosticStep.NO_ITEMS if self.item_count == 0 else DiagnosticStep.NO_PACKAGE_IDS
            return CrewRolesDiagnostic(step=step, **base)

        base['package_id_count'] = len(self.package_ids)
        if not self.packages:
            return CrewRolesDiagnostic(step=DiagnosticStep.NO_PACKAGES_FOUND, **base)

        base['packages'] = [_summarize(p) for p in self.packages]
        base['ingredients'] = [_summarize(p) for p in self.ingredients] or None
        base['unexpanded_bundles'] = [_summarize(p) for p in self.unexpanded_bundles] or None
        if not self.roles:
            return CrewRolesDiagnostic(step=DiagnosticStep.NO_ROLES, **base)
        return CrewRolesDiagnostic(step=DiagnosticStep.OK, roles_found=list(self.roles), **base)


class CatalogExpander:
    """
    Derives crew roles from a deal's proposal by walking the catalog.
    """

    def __init__(
        self,
        repository: ProductionRepository,
        max_bundle_depth: int | None = None,
    ):
        """
        Initialize the expander.

        Args:
            repository: Row-store access for proposals and packages
            max_bundle_depth: Bundle hops followed below the proposal
                              (defaults to config.CATALOG_MAX_BUNDLE_DEPTH)
        """
        self.repository = repository
        self.max_bundle_depth = (
            config.CATALOG_MAX_BUNDLE_DEPTH if max_bundle_depth is None else max_bundle_depth
        )

    async def walk(self, workspace_id: str, deal_id: str) -> CatalogWalk:
        """Run the full catalog walk for a deal and record what was seen."""
        result = CatalogWalk()

        proposals = await self.repository.list_proposals(workspace_id, deal_id)
        result.proposal = select_governing_proposal(proposals)
        if result.proposal is None:
            return result

        items = await self.repository.list_proposal_items(result.proposal.id)
        result.item_count = len(items)
        result.package_ids = unique_in_order(
            ref.strip() for item in items for ref in item.package_refs()
        )
        if not result.package_ids:
            return result

        visited = set(result.package_ids)
        frontier = await self._load(workspace_id, result.package_ids)
        result.packages = frontier
        roles: list[str] = []
        depth = 0

        while frontier:
            next_ids: list[str] = []
            for package in frontier:
                if package.staff_role:
                    roles.append(package.staff_role)
                if not package.is_bundle:
                    continue
                if depth >= self.max_bundle_depth:
                    if package.ingredient_ids():
                        result.unexpanded_bundles.append(package)
                    continue
                for ingredient_id in package.ingredient_ids():
                    if ingredient_id not in visited:
                        visited.add(ingredient_id)
                        next_ids.append(ingredient_id)

            if not next_ids:
                break
            depth += 1
            frontier = await self._load(workspace_id, next_ids)
            result.ingredients.extend(frontier)

        result.roles = unique_in_order(roles)

        logger.debug(
            'catalog_expander.walk_complete',
            deal_id=deal_id,
            proposal_id=result.proposal.id,
            package_count=len(result.packages),
            ingredient_count=len(result.ingredients),
            roles=result.roles,
        )
        return result

    async def _load(self, workspace_id: str, package_ids: list[str]) -> list[Package]:
        """Load packages in request order; missing ids are skipped."""
        loaded = await self.repository.get_packages(workspace_id, package_ids)
        by_id = {p.id: p for p in loaded}
        return [by_id[pid] for pid in package_ids if pid in by_id]

    async def expand_roles(self, workspace_id: str, deal_id: str) -> list[str]:
        """Staff roles implied by the deal's governing proposal (raising variant)."""
        return (await self.walk(workspace_id, deal_id)).roles

    async def diagnose_roles(self, workspace_id: str, deal_id: str) -> CrewRolesDiagnostic:
        """Why roles were or were not found for the deal (raising variant)."""
        return (await self.walk(workspace_id, deal_id)).to_diagnostic()

    @fail_soft('derive_crew_roles')
    async def derive_crew_roles(self, workspace_id: str, deal_id: str) -> list[str]:
        return await self.expand_roles(workspace_id, deal_id)

    @fail_soft('diagnose_crew_roles')
    async def diagnose_crew_roles(self, workspace_id: str, deal_id: str) -> CrewRolesDiagnostic:
        return await self.diagnose_roles(workspace_id, deal_id)


# =============================================================================
# Human-readable explanation
# =============================================================================

_STAFF_ROLE_HINT = 'To get crew roles: in Catalog, open each service item, set "Staff role" (e.g. DJ), then save.'


def _describe_package(summary: PackageSummary, mark_missing: bool) -> str:
    if summary.staff_role:
        return f'{summary.name} ({summary.category}, staff role: {summary.staff_role})'
    if mark_missing:
        return f'{summary.name} ({summary.category}, no staff role)'
    return f'{summary.name} ({summary.category})'


def describe_diagnostic(diagnostic: CrewRolesDiagnostic) -> str:
    """Explain a crew-roles diagnostic to the person running a sync."""
    step = diagnostic.step
    if step == DiagnosticStep.NO_PROPOSAL:
        return 'No proposal found for this deal.'
    if step == DiagnosticStep.NO_ITEMS:
        return 'This proposal has no line items. Add packages from the catalog to the proposal.'
    if step == DiagnosticStep.NO_PACKAGE_IDS:
        return (
            f'Proposal has {diagnostic.item_count or 0} item(s) but none are catalog packages '
            '(they may be custom lines). Add a service or package from the catalog.'
        )
    if step == DiagnosticStep.NO_PACKAGES_FOUND:
        return 'Proposal references packages that could not be loaded. Check workspace.'
    if step == DiagnosticStep.NO_ROLES:
        parts: list[str] = []
        if diagnostic.packages:
            listed = '; '.join(_describe_package(p, False) for p in diagnostic.packages)
            parts.append(f'On proposal: {listed}.')
        if diagnostic.ingredients:
            listed = '; '.join(_describe_package(p, True) for p in diagnostic.ingredients)
            parts.append(f'Inside bundles: {listed}.')
        if diagnostic.unexpanded_bundles:
            listed = '; '.join(p.name for p in diagnostic.unexpanded_bundles)
            parts.append(f'Nested bundles are not expanded: {listed}.')
        if parts:
            parts.append(_STAFF_ROLE_HINT)
            return ' '.join(parts)
        return (
            'No crew roles found. In Catalog, set "Staff role" on service packages (e.g. DJ), '
            'then add them (or a package that contains them) to the proposal.'
        )
    if diagnostic.roles_found:
        return f'All crew roles from the proposal are already on this production: {", ".join(diagnostic.roles_found)}.'
    return 'No crew roles found. Add service packages with a staff role in Catalog, then add them to the proposal.'
