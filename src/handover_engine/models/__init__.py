"""
Data models for the handover engine.
"""

from .catalog import (
    CrewRolesDiagnostic,
    DiagnosticStep,
    GOVERNING_PROPOSAL_STATUSES,
    Package,
    PackageCategory,
    PackageSummary,
    Proposal,
    ProposalItem,
    ProposalStatus,
)
from .deal import (
    Contract,
    Deal,
    DealStatus,
    EventConflict,
    HANDOVER_READY_STATUSES,
    HandoverOutcome,
    HandoverPayload,
    HandoverPlan,
    HandoverVitals,
    Production,
    Project,
    SyncOutcome,
)
from .run_of_show import (
    CREW_STATUS_ORDER,
    GEAR_STATUS_ORDER,
    LOGISTICS_KEYS,
    RUN_OF_SHOW_SECTIONS,
    CrewItem,
    CrewStatus,
    GearItem,
    GearStatus,
    LogisticsState,
    RunOfShowDocument,
    RunOfShowUpdate,
    RunOfShowView,
    next_crew_status,
    next_gear_status,
    normalize_crew_items,
    normalize_gear_items,
    normalize_logistics,
)

__all__ = [
    # Catalog
    'CrewRolesDiagnostic',
    'DiagnosticStep',
    'GOVERNING_PROPOSAL_STATUSES',
    'Package',
    'PackageCategory',
    'PackageSummary',
    'Proposal',
    'ProposalItem',
    'ProposalStatus',
    # Deal / production
    'Contract',
    'Deal',
    'DealStatus',
    'EventConflict',
    'HANDOVER_READY_STATUSES',
    'HandoverOutcome',
    'HandoverPayload',
    'HandoverPlan',
    'HandoverVitals',
    'Production',
    'Project',
    'SyncOutcome',
    # Run of show
    'CREW_STATUS_ORDER',
    'GEAR_STATUS_ORDER',
    'LOGISTICS_KEYS',
    'RUN_OF_SHOW_SECTIONS',
    'CrewItem',
    'CrewStatus',
    'GearItem',
    'GearStatus',
    'LogisticsState',
    'RunOfShowDocument',
    'RunOfShowUpdate',
    'RunOfShowView',
    'next_crew_status',
    'next_gear_status',
    'normalize_crew_items',
    'normalize_gear_items',
    'normalize_logistics',
]
