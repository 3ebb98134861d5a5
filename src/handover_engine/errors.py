"""
Custom exceptions and error handling for the handover engine.

Provides:
- Typed exception hierarchy for the engine's failure modes
- Error context preservation for debugging
- Stable error codes carried across the fail-soft service boundary
"""

from typing import Any


class HandoverEngineError(Exception):
    """Base exception for all handover engine errors."""

    code = 'error'

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} | context={self.context}"
        return self.message


# =============================================================================
# Domain Errors
# =============================================================================


class NotFoundError(HandoverEngineError):
    """Deal, production, organization or other row absent or outside the workspace."""

    code = 'not_found'


class ValidationError(HandoverEngineError):
    """Input or state transition rejected before any write."""

    code = 'validation'


class ConfigurationError(ValidationError):
    """Workspace data is shaped in a way the engine refuses to guess about."""

    code = 'configuration'


class ConflictError(HandoverEngineError):
    """Write collides with existing data (duplicate connection, etc.)."""

    code = 'conflict'


class StaleSectionError(ConflictError):
    """A run-of-show section changed between read and write."""

    code = 'stale_section'


class DealAlreadyLinkedError(ConflictError):
    """The deal gained a production while this handover was in flight."""

    pass


class MissingDependencyError(HandoverEngineError):
    """An optional table or feature has not been provisioned."""

    code = 'missing_dependency'


class HandoverError(HandoverEngineError):
    """The handover transaction failed and was rolled back."""

    code = 'partial_failure'


class InternalError(HandoverEngineError):
    """Unexpected failure, wrapped at the service boundary."""

    code = 'internal'


# =============================================================================
# Client Errors
# =============================================================================


class ClientError(HandoverEngineError):
    """Base class for client-related errors."""

    code = 'client'


class PostgresError(ClientError):
    """Error from Postgres operations."""

    pass


class PostgresConnectionError(PostgresError):
    """Failed to connect to Postgres."""

    pass


class PostgresQueryError(PostgresError):
    """Error executing a SQL statement."""

    pass


class PostgresConstraintError(PostgresError):
    """Constraint violation (e.g., duplicate unique key)."""

    code = 'conflict'


# =============================================================================
# Error Handling Utilities
# =============================================================================

UNIQUE_VIOLATION = '23505'
UNDEFINED_TABLE = '42P01'


def _sqlstate(exc: Exception) -> str | None:
    """Pull the SQLSTATE off a SQLAlchemy/asyncpg exception chain."""
    for candidate in (exc, getattr(exc, 'orig', None), getattr(exc, '__cause__', None)):
        if candidate is None:
            continue
        state = getattr(candidate, 'sqlstate', None) or getattr(candidate, 'pgcode', None)
        if isinstance(state, str):
            return state
    return None


def wrap_postgres_error(exc: Exception, context: dict[str, Any] | None = None) -> HandoverEngineError:
    """
    Wrap a Postgres / SQLAlchemy exception in our typed error hierarchy.

    Args:
        exc: The original exception
        context: Additional context for debugging

    Returns:
        Typed error: MissingDependencyError for unprovisioned tables,
        otherwise a PostgresError subclass
    """
    error_str = str(exc).lower()
    state = _sqlstate(exc)
    ctx = context or {}
    ctx['original_error'] = str(exc)
    ctx['error_type'] = type(exc).__name__
    if state:
        ctx['sqlstate'] = state

    if state == UNDEFINED_TABLE or ('relation' in error_str and 'does not exist' in error_str):
        return MissingDependencyError(
            f"Table not provisioned: {exc}",
            context=ctx,
        )
    elif state == UNIQUE_VIOLATION or 'unique' in error_str or 'duplicate key' in error_str:
        return PostgresConstraintError(
            f"Postgres constraint violation: {exc}",
            context=ctx,
        )
    elif 'connection' in error_str or 'connect' in error_str:
        return PostgresConnectionError(
            f"Postgres connection failed: {exc}",
            context=ctx,
        )
    else:
        return PostgresQueryError(
            f"Postgres query error: {exc}",
            context=ctx,
        )
