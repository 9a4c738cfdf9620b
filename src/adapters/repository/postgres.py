"""
PostgreSQL repository adapter - Implements RegistrarRepository protocol.

This module provides the PostgreSQL implementation of the registrar's
persisted layout using psycopg3 with raw SQL:

- domains:          label hash -> listing (name, owner, price, referral fee)
- custody:          label hash -> custody override and custody state
- registrar_state:  single row holding the administrator and stop flag

Transactions
------------
atomic() checks a connection out of the pool, opens a transaction and
pins the connection to the current thread; every read and write issued
by that thread inside the block joins the same transaction. A nested
atomic() joins the outer one. When the block raises, the transaction
rolls back.
"""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from psycopg import Connection
from psycopg_pool import ConnectionPool

from src.domain.ports import CustodyRecord, CustodyState, Domain, RegistrarState

logger = logging.getLogger(__name__)


class PostgresRegistrarRepository:
    """
    Implements RegistrarRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool
        self._local = threading.local()

    @contextmanager
    def atomic(self) -> Iterator[None]:
        if getattr(self._local, "conn", None) is not None:
            yield
            return

        with self._pool.connection() as conn, conn.transaction():
            self._local.conn = conn
            try:
                yield
            finally:
                self._local.conn = None

    @contextmanager
    def _connection(self) -> Iterator[Connection]:
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            yield conn
            return
        with self._pool.connection() as conn:
            yield conn

    def get_domain(self, label: bytes) -> Domain:
        sql = """
            SELECT name, owner, price, referral_fee_ppm
            FROM domains
            WHERE label = %s
        """
        with self._connection() as conn:
            row = conn.execute(sql, (label,)).fetchone()
        if row is None:
            return Domain()
        return Domain(name=row[0], owner=row[1], price=int(row[2]), referral_fee_ppm=row[3])

    def save_domain(self, label: bytes, domain: Domain) -> None:
        sql = """
            INSERT INTO domains (label, name, owner, price, referral_fee_ppm)
            VALUES (%s, %s, %s, %s, %s)
            ON CONFLICT (label) DO UPDATE
            SET name = EXCLUDED.name,
                owner = EXCLUDED.owner,
                price = EXCLUDED.price,
                referral_fee_ppm = EXCLUDED.referral_fee_ppm
        """
        with self._connection() as conn:
            conn.execute(
                sql,
                (label, domain.name, domain.owner, domain.price, domain.referral_fee_ppm),
            )

    def get_custody(self, label: bytes) -> CustodyRecord:
        sql = "SELECT override_owner, state FROM custody WHERE label = %s"
        with self._connection() as conn:
            row = conn.execute(sql, (label,)).fetchone()
        if row is None:
            return CustodyRecord()
        return CustodyRecord(override=row[0], state=CustodyState(row[1]))

    def save_custody(self, label: bytes, record: CustodyRecord) -> None:
        sql = """
            INSERT INTO custody (label, override_owner, state)
            VALUES (%s, %s, %s)
            ON CONFLICT (label) DO UPDATE
            SET override_owner = EXCLUDED.override_owner,
                state = EXCLUDED.state
        """
        with self._connection() as conn:
            conn.execute(sql, (label, record.override, record.state.value))

    def get_state(self) -> RegistrarState:
        sql = "SELECT owner, stopped FROM registrar_state WHERE id = 1"
        with self._connection() as conn:
            row = conn.execute(sql).fetchone()
        if row is None:
            return RegistrarState()
        return RegistrarState(owner=row[0], stopped=row[1])

    def save_state(self, state: RegistrarState) -> None:
        sql = """
            INSERT INTO registrar_state (id, owner, stopped)
            VALUES (1, %s, %s)
            ON CONFLICT (id) DO UPDATE
            SET owner = EXCLUDED.owner,
                stopped = EXCLUDED.stopped
        """
        with self._connection() as conn:
            conn.execute(sql, (state.owner, state.stopped))


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
