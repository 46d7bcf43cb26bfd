"""
PostgreSQL repository adapters - Implement OwnerRepository and StaffRepository.

This module provides the PostgreSQL implementation of the domain's actor
store ports using psycopg3 with raw SQL.

Concurrency Design - Optimistic Writes:
--------------------------------------
Every row carries a `version` counter. `save` issues

    UPDATE ... SET ..., version = version + 1 WHERE id = %s AND version = %s

so a status transition computed from a stale read matches zero rows and is
reported back to the state machine as a lost race. No row is locked across
the read-check-write cycle.

Contact uniqueness is enforced by partial unique indexes (see migrations):
an email or phone number may be held by one account that is not REJECTED.
Concurrent registrations for the same contact therefore produce exactly one
row; the others surface as a UniqueViolation and `add` returns None.

Any other database error is raised as DependencyFailure: the caller cannot
know whether the write happened.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg
from psycopg import errors
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from workshop_onboarding.domain.exceptions import DependencyFailure
from workshop_onboarding.domain.models import OwnerAccount, StaffAccount
from workshop_onboarding.domain.ports import OwnerStatus, StaffStatus

logger = logging.getLogger(__name__)


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except psycopg.Error as e:
        logger.error("Actor store %s failed: %s", operation, e)
        raise DependencyFailure(f"Actor store {operation} failed") from e


class _PostgresAccounts:
    """Shared SQL for both account tables."""

    table: str
    columns: tuple[str, ...]

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def _insert(self, values: dict[str, Any]) -> dict[str, Any] | None:
        columns = ", ".join(self.columns)
        placeholders = ", ".join(f"%({c})s" for c in self.columns)
        sql = f"INSERT INTO {self.table} ({columns}) VALUES ({placeholders}) RETURNING *"

        with _store_errors("insert"):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                try:
                    cursor.execute(sql, values)
                except errors.UniqueViolation:
                    conn.rollback()
                    return None
                row = cursor.fetchone()
                conn.commit()
                return row

    def _select_one(self, where: str, params: tuple) -> dict[str, Any] | None:
        sql = f"SELECT * FROM {self.table} WHERE {where}"
        with _store_errors("select"):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(sql, params)
                return cursor.fetchone()

    def _select_many(self, where: str, params: tuple) -> list[dict[str, Any]]:
        sql = f"SELECT * FROM {self.table} WHERE {where} ORDER BY created_at, id"
        with _store_errors("select"):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(sql, params)
                return cursor.fetchall()

    def _find_by_contact(self, identifier: str) -> dict[str, Any] | None:
        # Live holder first, then the most recent rejected account
        return self._select_one(
            "(email = %s OR phone_number = %s) "
            "ORDER BY (status <> 'REJECTED') DESC, id DESC LIMIT 1",
            (identifier, identifier),
        )

    def _update(self, account_id: int, version: int, values: dict[str, Any]) -> bool:
        assignments = ", ".join(f"{c} = %({c})s" for c in self.columns)
        sql = (
            f"UPDATE {self.table} SET {assignments}, version = version + 1 "
            "WHERE id = %(id)s AND version = %(version)s"
        )
        with _store_errors("update"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, {**values, "id": account_id, "version": version})
                conn.commit()
                return cursor.rowcount == 1


class PostgresOwnerRepository(_PostgresAccounts):
    """
    Implements OwnerRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    table = "workshop_owners"
    columns = (
        "owner_name",
        "email",
        "phone_number",
        "workshop_name",
        "address",
        "city",
        "trade_license_number",
        "status",
        "contact_verified",
        "third_party_verified",
        "verifier_name",
        "verifier_phone",
        "third_party_verified_at",
        "trade_license_url",
        "owner_photo_url",
        "workshop_photo_url",
        "password_hash",
        "is_active",
        "rejection_reason",
        "created_at",
        "updated_at",
        "activated_at",
    )

    def add(self, owner: OwnerAccount) -> OwnerAccount | None:
        row = self._insert(self._values(owner))
        return self._to_owner(row) if row is not None else None

    def get(self, owner_id: int) -> OwnerAccount | None:
        row = self._select_one("id = %s", (owner_id,))
        return self._to_owner(row) if row is not None else None

    def find_by_contact(self, identifier: str) -> OwnerAccount | None:
        row = self._find_by_contact(identifier)
        return self._to_owner(row) if row is not None else None

    def save(self, owner: OwnerAccount) -> bool:
        saved = self._update(owner.id, owner.version, self._values(owner))
        if saved:
            owner.version += 1
        return saved

    def list_by_status(self, status: OwnerStatus) -> list[OwnerAccount]:
        return [self._to_owner(row) for row in self._select_many("status = %s", (status.value,))]

    def list_active_workshops(self, city: str | None = None) -> list[OwnerAccount]:
        if city is None:
            rows = self._select_many("status = %s", (OwnerStatus.ACTIVE.value,))
        else:
            rows = self._select_many(
                "status = %s AND lower(trim(city)) = lower(trim(%s))",
                (OwnerStatus.ACTIVE.value, city),
            )
        return [self._to_owner(row) for row in rows]

    def _values(self, owner: OwnerAccount) -> dict[str, Any]:
        values = {c: getattr(owner, c) for c in self.columns}
        values["status"] = owner.status.value
        return values

    @staticmethod
    def _to_owner(row: dict[str, Any]) -> OwnerAccount:
        return OwnerAccount(**{**row, "status": OwnerStatus.parse(row["status"])})


class PostgresStaffRepository(_PostgresAccounts):
    """Implements StaffRepository protocol via psycopg3."""

    table = "workshop_staff"
    columns = (
        "name",
        "email",
        "phone_number",
        "city",
        "workshop_owner_id",
        "status",
        "phone_verified",
        "is_active",
        "approved_by_owner_id",
        "approved_at",
        "rejection_reason",
        "created_at",
        "updated_at",
    )

    def add(self, staff: StaffAccount) -> StaffAccount | None:
        row = self._insert(self._values(staff))
        return self._to_staff(row) if row is not None else None

    def get(self, staff_id: int) -> StaffAccount | None:
        row = self._select_one("id = %s", (staff_id,))
        return self._to_staff(row) if row is not None else None

    def find_by_contact(self, identifier: str) -> StaffAccount | None:
        row = self._find_by_contact(identifier)
        return self._to_staff(row) if row is not None else None

    def save(self, staff: StaffAccount) -> bool:
        saved = self._update(staff.id, staff.version, self._values(staff))
        if saved:
            staff.version += 1
        return saved

    def list_by_owner(
        self, workshop_owner_id: int, status: StaffStatus | None = None
    ) -> list[StaffAccount]:
        if status is None:
            rows = self._select_many("workshop_owner_id = %s", (workshop_owner_id,))
        else:
            rows = self._select_many(
                "workshop_owner_id = %s AND status = %s", (workshop_owner_id, status.value)
            )
        return [self._to_staff(row) for row in rows]

    def _values(self, staff: StaffAccount) -> dict[str, Any]:
        values = {c: getattr(staff, c) for c in self.columns}
        values["status"] = staff.status.value
        return values

    @staticmethod
    def _to_staff(row: dict[str, Any]) -> StaffAccount:
        return StaffAccount(**{**row, "status": StaffStatus.parse(row["status"])})


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: workshop_onboarding/adapters/repository/postgres.py -> migrations/
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
