"""
Tests for the errors module.
"""

from handover_engine.errors import (
    ClientError,
    ConfigurationError,
    ConflictError,
    DealAlreadyLinkedError,
    HandoverEngineError,
    MissingDependencyError,
    NotFoundError,
    PostgresConnectionError,
    PostgresConstraintError,
    PostgresError,
    PostgresQueryError,
    StaleSectionError,
    ValidationError,
    wrap_postgres_error,
)
from deal_stakeholders.errors import DuplicateStakeholderError, MissingIdentityError


class _DriverError(Exception):
    def __init__(self, message: str, sqlstate: str | None = None):
        super().__init__(message)
        self.sqlstate = sqlstate


class _WrappedDriverError(Exception):
    """Mimics sqlalchemy.exc.DBAPIError: the driver error sits on .orig."""

    def __init__(self, message: str, orig: Exception):
        super().__init__(message)
        self.orig = orig


class TestErrorHierarchy:
    """Test error class hierarchy."""

    def test_base_error_with_context(self):
        error = HandoverEngineError("Something went wrong", context={"deal_id": "d1"})

        assert error.message == "Something went wrong"
        assert error.context == {"deal_id": "d1"}
        assert "deal_id" in str(error)

    def test_base_error_without_context(self):
        error = HandoverEngineError("Simple error")

        assert error.context == {}
        assert str(error) == "Simple error"

    def test_codes(self):
        assert NotFoundError("x").code == "not_found"
        assert ValidationError("x").code == "validation"
        assert ConfigurationError("x").code == "configuration"
        assert ConflictError("x").code == "conflict"
        assert StaleSectionError("x").code == "stale_section"
        assert MissingDependencyError("x").code == "missing_dependency"
        assert PostgresConstraintError("x").code == "conflict"

    def test_inheritance(self):
        assert isinstance(ConfigurationError("x"), ValidationError)
        assert isinstance(StaleSectionError("x"), ConflictError)
        assert isinstance(DealAlreadyLinkedError("x"), ConflictError)
        assert isinstance(PostgresConnectionError("x"), PostgresError)
        assert isinstance(PostgresError("x"), ClientError)
        assert isinstance(ClientError("x"), HandoverEngineError)

    def test_stakeholder_errors_use_core_codes(self):
        duplicate = DuplicateStakeholderError()
        missing = MissingIdentityError()

        assert duplicate.code == "conflict"
        assert duplicate.message == "This connection is already on the deal."
        assert missing.code == "validation"
        assert "organizationId or entityId" in missing.message


class TestWrapPostgresError:
    """Test driver error translation."""

    def test_unique_violation_by_sqlstate(self):
        wrapped = wrap_postgres_error(_DriverError("boom", sqlstate="23505"))

        assert isinstance(wrapped, PostgresConstraintError)
        assert wrapped.context["sqlstate"] == "23505"

    def test_unique_violation_on_orig(self):
        orig = _DriverError("duplicate", sqlstate="23505")
        wrapped = wrap_postgres_error(_WrappedDriverError("IntegrityError", orig))

        assert isinstance(wrapped, PostgresConstraintError)

    def test_undefined_table_is_missing_dependency(self):
        wrapped = wrap_postgres_error(_DriverError("nope", sqlstate="42P01"))

        assert isinstance(wrapped, MissingDependencyError)

    def test_undefined_table_by_message(self):
        wrapped = wrap_postgres_error(Exception('relation "deal_stakeholders" does not exist'))

        assert isinstance(wrapped, MissingDependencyError)

    def test_connection_error(self):
        wrapped = wrap_postgres_error(Exception("could not connect to server"))

        assert isinstance(wrapped, PostgresConnectionError)

    def test_other_errors_are_query_errors(self):
        wrapped = wrap_postgres_error(Exception("syntax error at or near SELECT"), {"sql": "SELECT"})

        assert isinstance(wrapped, PostgresQueryError)
        assert wrapped.context["sql"] == "SELECT"
        assert wrapped.context["error_type"] == "Exception"
