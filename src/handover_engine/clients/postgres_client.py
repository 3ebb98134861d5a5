"""
Postgres (Supabase) client for the handover engine.

Uses SQLAlchemy 2.0 async engine + asyncpg for raw SQL execution. The
engine treats the database as a workspace-scoped row store; all SQL lives
in the repositories, this module only manages the engine, transactions
and error translation.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse
from uuid import UUID

import structlog
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..errors import PostgresConnectionError, wrap_postgres_error

logger = structlog.get_logger(__name__)

_STRIP_PARAMS = {'channel_binding', 'sslmode'}


def _sanitize_url(url: str) -> tuple[str, bool]:
    """Remove URL query params that asyncpg does not understand.

    Supabase / Neon pooler URLs include ``sslmode=require`` and
    ``channel_binding=require`` which are libpq parameters. asyncpg rejects
    unknown connection params, so SSL is passed via ``connect_args``.

    Returns:
        (sanitized url, whether SSL was required)
    """
    parsed = urlparse(url)
    if not parsed.query:
        return url, False
    params = parse_qs(parsed.query)
    ssl_required = params.get('sslmode', [''])[0] in ('require', 'verify-ca', 'verify-full')
    filtered = {k: v for k, v in params.items() if k not in _STRIP_PARAMS}
    new_query = urlencode(filtered, doseq=True)
    return urlunparse(parsed._replace(query=new_query)), ssl_required


def _normalize_value(value: Any) -> Any:
    """asyncpg hands back UUID objects; the engine works with string ids."""
    if isinstance(value, UUID):
        return str(value)
    return value


def row_to_dict(row: Any) -> dict[str, Any]:
    """Convert a SQLAlchemy Row to a plain dict with string ids."""
    return {key: _normalize_value(val) for key, val in row._mapping.items()}


class PostgresClient:
    """
    Async Postgres client.

    Reads outside a transaction are retried on connection failures; writes
    are never retried here (callers own idempotency).
    """

    def __init__(self, database_url: str | None = None):
        """
        Initialize with a Postgres connection URL.

        Args:
            database_url: Postgres connection URL. 'postgres://' and
                          'postgresql://' prefixes are converted to use asyncpg.
        """
        self._engine: AsyncEngine | None = None
        self._database_url = database_url

    async def connect(self, database_url: str | None = None) -> None:
        """
        Create the async engine. Idempotent; no-op if already connected.

        Args:
            database_url: Override the URL from __init__.
        """
        if self._engine is not None:
            return

        url = database_url or self._database_url
        if not url:
            raise ValueError('database_url is required')

        url, ssl_required = _sanitize_url(url)

        if url.startswith('postgres://'):
            url = url.replace('postgres://', 'postgresql+asyncpg://', 1)
        elif url.startswith('postgresql://') and '+asyncpg' not in url:
            url = url.replace('postgresql://', 'postgresql+asyncpg://', 1)

        # Supabase pooler (PgBouncer) doesn't support prepared statements.
        connect_args: dict[str, Any] = {'prepared_statement_cache_size': 0}
        if ssl_required:
            connect_args['ssl'] = 'require'

        self._engine = create_async_engine(
            url,
            pool_size=5,
            max_overflow=5,
            pool_pre_ping=True,
            pool_timeout=30,
            connect_args=connect_args,
        )
        logger.info('postgres_client.connected')

    async def close(self) -> None:
        """Dispose of the engine and connection pool."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            logger.info('postgres_client.closed')

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError('PostgresClient not connected; call connect() first')
        return self._engine

    async def verify_connectivity(self) -> bool:
        """Return True if we can execute a simple query."""
        try:
            async with self.engine.begin() as conn:
                await conn.execute(text('SELECT 1'))
            return True
        except Exception:
            logger.exception('postgres_client.connectivity_check_failed')
            return False

    # =========================================================================
    # Transactions
    # =========================================================================

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncConnection]:
        """
        Open a transaction; commits on exit, rolls back on any exception.

        Driver errors raised inside the block are translated into the
        engine's error hierarchy; engine errors pass through unchanged.
        """
        try:
            async with self.engine.begin() as conn:
                yield conn
        except SQLAlchemyError as e:
            raise wrap_postgres_error(e) from e

    # =========================================================================
    # Statement helpers
    # =========================================================================

    @retry(
        retry=retry_if_exception_type(PostgresConnectionError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    async def fetch_all(
        self,
        sql: str,
        params: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Run a read query in its own transaction and return all rows."""
        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(text(sql), params or {})
                return [row_to_dict(row) for row in result.fetchall()]
        except SQLAlchemyError as e:
            raise wrap_postgres_error(e, {'sql': sql.strip().split('\n')[0]}) from e

    async def fetch_one(
        self,
        sql: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """Run a read query and return the first row, or None."""
        rows = await self.fetch_all(sql, params)
        return rows[0] if rows else None

    async def execute(
        self,
        sql: str,
        params: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Run a single write statement in its own transaction; returns RETURNING rows."""
        try:
            async with self.engine.begin() as conn:
                return await execute_in(conn, sql, params)
        except SQLAlchemyError as e:
            raise wrap_postgres_error(e, {'sql': sql.strip().split('\n')[0]}) from e


async def execute_in(
    conn: AsyncConnection,
    sql: str,
    params: dict[str, Any] | None = None,
) -> list[dict[str, Any]]:
    """Execute a statement on an open connection; returns RETURNING rows (if any)."""
    result = await conn.execute(text(sql), params or {})
    if not result.returns_rows:
        return []
    return [row_to_dict(row) for row in result.fetchall()]
