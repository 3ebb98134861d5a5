"""
Request-scoped dependencies.

Services are built per request from the shared PostgresClient on app.state.
"""

from fastapi import Depends, Request

from deal_stakeholders.repository import StakeholderRepository
from deal_stakeholders.resolver import StakeholderResolver
from deal_stakeholders.roster import OrgRoster

from ..clients.postgres_client import PostgresClient
from ..pipeline import (
    CatalogExpander,
    ConflictDetector,
    CrewSync,
    FlightChecks,
    HandoverOrchestrator,
    RunOfShowMerger,
)
from ..repository import ProductionRepository


def get_postgres(request: Request) -> PostgresClient:
    return request.app.state.postgres


def get_production_repository(
    postgres: PostgresClient = Depends(get_postgres),
) -> ProductionRepository:
    return ProductionRepository(postgres)


def get_stakeholder_repository(
    postgres: PostgresClient = Depends(get_postgres),
) -> StakeholderRepository:
    return StakeholderRepository(postgres)


def get_expander(
    repository: ProductionRepository = Depends(get_production_repository),
) -> CatalogExpander:
    return CatalogExpander(repository)


def get_merger(
    repository: ProductionRepository = Depends(get_production_repository),
) -> RunOfShowMerger:
    return RunOfShowMerger(repository)


def get_flight_checks(merger: RunOfShowMerger = Depends(get_merger)) -> FlightChecks:
    return FlightChecks(merger)


def get_crew_sync(
    repository: ProductionRepository = Depends(get_production_repository),
    expander: CatalogExpander = Depends(get_expander),
    merger: RunOfShowMerger = Depends(get_merger),
) -> CrewSync:
    return CrewSync(repository, expander, merger)


def get_orchestrator(
    repository: ProductionRepository = Depends(get_production_repository),
    expander: CatalogExpander = Depends(get_expander),
) -> HandoverOrchestrator:
    return HandoverOrchestrator(repository, expander)


def get_conflict_detector(
    repository: ProductionRepository = Depends(get_production_repository),
    merger: RunOfShowMerger = Depends(get_merger),
) -> ConflictDetector:
    return ConflictDetector(repository, merger)


def get_stakeholder_resolver(
    repository: StakeholderRepository = Depends(get_stakeholder_repository),
) -> StakeholderResolver:
    return StakeholderResolver(repository)


def get_roster(
    repository: StakeholderRepository = Depends(get_stakeholder_repository),
) -> OrgRoster:
    return OrgRoster(repository)
