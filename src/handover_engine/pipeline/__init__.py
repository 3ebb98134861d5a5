"""
Handover pipeline services.

- CatalogExpander: proposal → staff roles (bounded bundle walk)
- RunOfShowMerger: section-replace writes with per-section versions
- FlightChecks: crew / gear / logistics state machines
- CrewSync: additive post-handover crew repair
- HandoverOrchestrator: deal → production, transactional
- ConflictDetector: crew / gear double-booking across productions
"""

from .conflicts import ConflictDetector
from .crew_sync import CrewSync
from .expander import CatalogExpander, CatalogWalk, describe_diagnostic, select_governing_proposal
from .flight_checks import FlightChecks, SectionMutator
from .handover import HandoverOrchestrator, build_crew_sections
from .merger import RunOfShowMerger, build_view

__all__ = [
    'CatalogExpander',
    'CatalogWalk',
    'ConflictDetector',
    'CrewSync',
    'FlightChecks',
    'HandoverOrchestrator',
    'RunOfShowMerger',
    'SectionMutator',
    'build_crew_sections',
    'build_view',
    'describe_diagnostic',
    'select_governing_proposal',
]
