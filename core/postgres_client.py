"""
PostgreSQL Datastore for the PFX platform

asyncpg-backed implementation of ``DatastoreProtocol``. Tables use jsonb
columns for the nested shipment documents (sender/receiver info, parcel
details, history), so a JSON codec is registered on every pooled connection.

Usage:
    from core.postgres_client import create_datastore

    datastore = create_datastore(settings.infra)
    await datastore.initialize()

    rows = await datastore.select("shipments", {"user_id": user_id}, order_by="created_at", descending=True)
"""

import json
import logging
import re
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

import asyncpg

from core.config import InfraConfig
from core.datastore import DatastoreError, Row, UniqueViolationError

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _encode_json(value: Any) -> str:
    return json.dumps(value, default=_json_default)


def _quote(identifier: str) -> str:
    if not _IDENTIFIER.match(identifier):
        raise DatastoreError(f"Invalid identifier: {identifier!r}")
    return f'"{identifier}"'


class PostgresDatastore:
    """
    PostgreSQL datastore with connection pooling.

    Provides:
    - Equality-filtered select/update/delete scoped by unique identifiers
    - insert/upsert returning the stored row
    - Translation of driver errors into DatastoreError / UniqueViolationError
    """

    def __init__(self, config: InfraConfig, schema: str = "public"):
        self.config = config
        self.schema = schema
        self._pool: Optional[asyncpg.Pool] = None

    async def initialize(self):
        """Create the connection pool"""
        if self._pool is not None:
            return
        logger.info(
            f"Connecting to PostgreSQL at {self.config.postgres_host}:{self.config.postgres_port}"
            f"/{self.config.postgres_db}"
        )
        with self._translate_errors("connect"):
            self._pool = await asyncpg.create_pool(
                dsn=self.config.postgres_dsn,
                min_size=self.config.postgres_pool_min,
                max_size=self.config.postgres_pool_max,
                init=self._init_connection,
            )

    @staticmethod
    async def _init_connection(conn: asyncpg.Connection):
        for type_name in ("json", "jsonb"):
            await conn.set_type_codec(
                type_name,
                encoder=_encode_json,
                decoder=json.loads,
                schema="pg_catalog",
            )

    async def close(self):
        """Close the connection pool"""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("PostgreSQL connection pool closed")

    async def health_check(self) -> bool:
        """Check database health"""
        try:
            pool = self._require_pool()
            async with pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except Exception as e:
            logger.warning(f"Database health check failed: {e}")
            return False

    # ====================
    # CRUD
    # ====================

    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        *,
        columns: Optional[Sequence[str]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Row]:
        column_sql = ", ".join(_quote(c) for c in columns) if columns else "*"
        where_sql, params = self._where(filters)
        query = f"SELECT {column_sql} FROM {self._table(table)}{where_sql}"
        if order_by:
            query += f" ORDER BY {_quote(order_by)} {'DESC' if descending else 'ASC'}"
        if limit is not None:
            params.append(int(limit))
            query += f" LIMIT ${len(params)}"

        with self._translate_errors("select", table):
            async with self._require_pool().acquire() as conn:
                records = await conn.fetch(query, *params)
        return [dict(r) for r in records]

    async def select_one(self, table: str, filters: Dict[str, Any]) -> Optional[Row]:
        rows = await self.select(table, filters, limit=1)
        return rows[0] if rows else None

    async def insert(self, table: str, row: Row) -> Row:
        columns = list(row.keys())
        placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
        query = (
            f"INSERT INTO {self._table(table)} ({', '.join(_quote(c) for c in columns)}) "
            f"VALUES ({placeholders}) RETURNING *"
        )

        with self._translate_errors("insert", table):
            async with self._require_pool().acquire() as conn:
                record = await conn.fetchrow(query, *row.values())

        if record is None:
            raise DatastoreError(f"Insert into {table} returned no row", table=table)
        return dict(record)

    async def upsert(self, table: str, row: Row, conflict_columns: Sequence[str]) -> Row:
        columns = list(row.keys())
        placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
        update_columns = [c for c in columns if c not in conflict_columns]
        if update_columns:
            conflict_action = "DO UPDATE SET " + ", ".join(
                f"{_quote(c)} = EXCLUDED.{_quote(c)}" for c in update_columns
            )
        else:
            conflict_action = "DO NOTHING"
        query = (
            f"INSERT INTO {self._table(table)} ({', '.join(_quote(c) for c in columns)}) "
            f"VALUES ({placeholders}) "
            f"ON CONFLICT ({', '.join(_quote(c) for c in conflict_columns)}) {conflict_action} "
            f"RETURNING *"
        )

        with self._translate_errors("upsert", table):
            async with self._require_pool().acquire() as conn:
                record = await conn.fetchrow(query, *row.values())

        if record is None:
            existing = await self.select_one(table, {c: row[c] for c in conflict_columns})
            if existing is None:
                raise DatastoreError(f"Upsert into {table} returned no row", table=table)
            return existing
        return dict(record)

    async def update(self, table: str, filters: Dict[str, Any], patch: Row) -> List[Row]:
        if not filters:
            raise DatastoreError("Refusing to update without filters", table=table)
        if not patch:
            return await self.select(table, filters)

        params: List[Any] = list(patch.values())
        set_sql = ", ".join(f"{_quote(c)} = ${i}" for i, c in enumerate(patch.keys(), start=1))
        where_sql, where_params = self._where(filters, start=len(params) + 1)
        params.extend(where_params)
        query = f"UPDATE {self._table(table)} SET {set_sql}{where_sql} RETURNING *"

        with self._translate_errors("update", table):
            async with self._require_pool().acquire() as conn:
                records = await conn.fetch(query, *params)
        return [dict(r) for r in records]

    async def delete(self, table: str, filters: Dict[str, Any]) -> int:
        if not filters:
            raise DatastoreError("Refusing to delete without filters", table=table)
        where_sql, params = self._where(filters)
        query = f"DELETE FROM {self._table(table)}{where_sql}"

        with self._translate_errors("delete", table):
            async with self._require_pool().acquire() as conn:
                status = await conn.execute(query, *params)

        # asyncpg returns e.g. "DELETE 3"
        try:
            return int(status.split()[-1])
        except (ValueError, IndexError):
            return 0

    # ====================
    # Helpers
    # ====================

    def _table(self, table: str) -> str:
        return f"{_quote(self.schema)}.{_quote(table)}"

    @staticmethod
    def _where(filters: Optional[Dict[str, Any]], start: int = 1) -> Tuple[str, List[Any]]:
        if not filters:
            return "", []
        clauses = []
        params: List[Any] = []
        for column, value in filters.items():
            if value is None:
                clauses.append(f"{_quote(column)} IS NULL")
            else:
                params.append(value)
                clauses.append(f"{_quote(column)} = ${start + len(params) - 1}")
        return " WHERE " + " AND ".join(clauses), params

    def _require_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise DatastoreError("Datastore not initialized")
        return self._pool

    @contextmanager
    def _translate_errors(self, operation: str, table: Optional[str] = None):
        try:
            yield
        except DatastoreError:
            raise
        except asyncpg.UniqueViolationError as e:
            logger.warning(f"Unique violation on {operation} {table}: {e}")
            raise UniqueViolationError(str(e), table=table) from e
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            logger.error(f"Datastore {operation} failed on {table}: {e}")
            raise DatastoreError(str(e), table=table) from e


def create_datastore(config: Optional[InfraConfig] = None, schema: str = "public") -> PostgresDatastore:
    """
    Create a PostgreSQL datastore. Call ``initialize()`` before use.

    Args:
        config: Infrastructure config (loaded from env if omitted)
        schema: Database schema holding the platform tables

    Returns:
        PostgresDatastore instance
    """
    return PostgresDatastore(config or InfraConfig.from_env(), schema=schema)


__all__ = ["PostgresDatastore", "create_datastore"]
