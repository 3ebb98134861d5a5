"""
Pytest configuration and shared fixtures.

Key fixtures:
- repo: in-memory ProductionRepository with one workspace seeded
- stakeholder_repo: in-memory StakeholderRepository
- merger / expander / checks / sync / orchestrator: services over `repo`

Behavioral tests run against the in-memory fakes in fakes.py; SQL-level
tests mock the SQLAlchemy engine directly.
"""

import sys
from pathlib import Path

import pytest

# Add src and tests to path for imports
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))
sys.path.insert(0, str(Path(__file__).parent))

# Load environment variables
from dotenv import load_dotenv

env_file = Path(__file__).parent.parent / '.env'
if env_file.exists():
    load_dotenv(env_file)

from fakes import WORKSPACE_ID, FakeProductionRepository, FakeStakeholderRepository  # noqa: E402

from handover_engine.pipeline import (  # noqa: E402
    CatalogExpander,
    ConflictDetector,
    CrewSync,
    FlightChecks,
    HandoverOrchestrator,
    RunOfShowMerger,
)


@pytest.fixture
def workspace_id() -> str:
    return WORKSPACE_ID


@pytest.fixture
def repo() -> FakeProductionRepository:
    return FakeProductionRepository()


@pytest.fixture
def stakeholder_repo() -> FakeStakeholderRepository:
    return FakeStakeholderRepository()


@pytest.fixture
def merger(repo) -> RunOfShowMerger:
    return RunOfShowMerger(repo)


@pytest.fixture
def expander(repo) -> CatalogExpander:
    return CatalogExpander(repo, max_bundle_depth=1)


@pytest.fixture
def checks(merger) -> FlightChecks:
    return FlightChecks(merger, max_attempts=3)


@pytest.fixture
def sync(repo, expander, merger) -> CrewSync:
    return CrewSync(repo, expander, merger, max_attempts=3)


@pytest.fixture
def orchestrator(repo, expander) -> HandoverOrchestrator:
    return HandoverOrchestrator(repo, expander)


@pytest.fixture
def detector(repo, merger) -> ConflictDetector:
    return ConflictDetector(repo, merger)
