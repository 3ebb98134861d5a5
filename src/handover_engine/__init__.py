"""
Handover Engine

Deal-to-production handover and run-of-show synchronization for an event
production CRM: derives crew roles from a sold proposal's catalog items,
converts a deal into a production exactly once, and keeps the production's
run-of-show document (crew, gear, logistics) consistent across concurrent
writers with per-section versions.
"""

__version__ = '0.1.0'

# Re-export key classes for convenience
from .config import Config, config
from .pipeline import (
    CatalogExpander,
    ConflictDetector,
    CrewSync,
    FlightChecks,
    HandoverOrchestrator,
    RunOfShowMerger,
    describe_diagnostic,
)
from .repository import ProductionRepository
from .clients import PostgresClient
from .logging import (
    configure_logging,
    get_logger,
    logging_context,
    OperationTimer,
)
from .errors import (
    HandoverEngineError,
    NotFoundError,
    ValidationError,
    ConfigurationError,
    ConflictError,
    StaleSectionError,
    MissingDependencyError,
    HandoverError,
)
from .results import ActionResult, fail_soft

__all__ = [
    # Version
    '__version__',
    # Config
    'Config',
    'config',
    # Services
    'CatalogExpander',
    'ConflictDetector',
    'CrewSync',
    'FlightChecks',
    'HandoverOrchestrator',
    'RunOfShowMerger',
    'describe_diagnostic',
    # Persistence
    'ProductionRepository',
    'PostgresClient',
    # Logging
    'configure_logging',
    'get_logger',
    'logging_context',
    'OperationTimer',
    # Errors
    'HandoverEngineError',
    'NotFoundError',
    'ValidationError',
    'ConfigurationError',
    'ConflictError',
    'StaleSectionError',
    'MissingDependencyError',
    'HandoverError',
    # Results
    'ActionResult',
    'fail_soft',
]
