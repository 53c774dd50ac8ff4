"""
SQLite repository - durable persistence collaborator.

Each entity type gets one table holding the instance as a JSON document
next to its identity and version columns. Updates and deletes are
compare-on-write (``WHERE id = ? AND version = ?``); zero affected rows
means the stored version moved on and the write is rejected.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generic, TypeVar

from metacrud.core.errors import OptimisticLockConflict, PreconditionError
from metacrud.core.ir import Entity

from .repository import field_matches

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Entity)


def quote_identifier(name: str) -> str:
    """Quote a table name for SQLite."""
    return '"' + name.replace('"', '""') + '"'


# =============================================================================
# Database Manager
# =============================================================================


class DatabaseManager:
    """
    Manages SQLite database connections and tables.

    Each ``connection()`` opens a fresh connection and commits on success.
    """

    def __init__(self, db_path: str | Path = ".metacrud/data.db"):
        self.db_path = Path(db_path)
        self._ensure_directory()

    def _ensure_directory(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """
        Get a database connection context manager.

        Yields:
            SQLite connection
        """
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def create_table(self, table_name: str) -> None:
        """Create the document table for an entity type if it doesn't exist."""
        table = quote_identifier(table_name)
        sql = (
            f"CREATE TABLE IF NOT EXISTS {table} ("
            '"id" INTEGER PRIMARY KEY AUTOINCREMENT, '
            '"version" INTEGER NOT NULL, '
            '"document" TEXT NOT NULL)'
        )
        with self.connection() as conn:
            conn.execute(sql)

    def table_exists(self, table_name: str) -> bool:
        with self.connection() as conn:
            cursor = conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
                (table_name,),
            )
            return cursor.fetchone() is not None


# =============================================================================
# Repository
# =============================================================================


class SQLiteRepository(Generic[T]):
    """Document-per-row repository for one entity model."""

    def __init__(
        self,
        db_manager: DatabaseManager,
        model_class: type[T],
        entity_type: str | None = None,
    ):
        self.db = db_manager
        self.model_class = model_class
        self.entity_type = entity_type or model_class.__name__
        self._table = quote_identifier(self.entity_type)
        self.db.create_table(self.entity_type)

    def _row_to_model(self, row: sqlite3.Row) -> T:
        data = json.loads(row["document"])
        data["id"] = row["id"]
        data["version"] = row["version"]
        return self.model_class.model_validate(data)

    def _document(self, instance: T) -> str:
        return instance.model_dump_json(exclude={"id", "version"})

    def _stored_version(self, conn: sqlite3.Connection, entity_id: int) -> int | None:
        row = conn.execute(
            f'SELECT "version" FROM {self._table} WHERE "id" = ?', (entity_id,)
        ).fetchone()
        return row["version"] if row else None

    def _check_type(self, instance: Any) -> None:
        if not isinstance(instance, self.model_class):
            raise TypeError(
                f"{self.entity_type} repository cannot store {type(instance).__name__}"
            )

    def save(self, instance: T) -> T:
        self._check_type(instance)
        document = self._document(instance)
        with self.db.connection() as conn:
            if instance.id is None:
                cursor = conn.execute(
                    f'INSERT INTO {self._table} ("version", "document") VALUES (1, ?)',
                    (document,),
                )
                entity_id = cursor.lastrowid
                version = 1
                logger.debug("Inserted %s #%s", self.entity_type, entity_id)
            else:
                cursor = conn.execute(
                    f'UPDATE {self._table} SET "document" = ?, "version" = "version" + 1 '
                    'WHERE "id" = ? AND "version" = ?',
                    (document, instance.id, instance.version),
                )
                if cursor.rowcount == 0:
                    raise OptimisticLockConflict(
                        self.entity_type,
                        instance.id,
                        instance.version,
                        self._stored_version(conn, instance.id),
                    )
                entity_id = instance.id
                version = instance.version + 1
                logger.debug("Updated %s #%s to version %s", self.entity_type, entity_id, version)
        return instance.model_copy(deep=True, update={"id": entity_id, "version": version})

    def delete(self, instance: T) -> None:
        self._check_type(instance)
        if instance.id is None:
            raise PreconditionError(f"Cannot delete an unsaved {self.entity_type}")
        with self.db.connection() as conn:
            cursor = conn.execute(
                f'DELETE FROM {self._table} WHERE "id" = ? AND "version" = ?',
                (instance.id, instance.version),
            )
            if cursor.rowcount == 0:
                raise OptimisticLockConflict(
                    self.entity_type,
                    instance.id,
                    instance.version,
                    self._stored_version(conn, instance.id),
                )
        logger.debug("Deleted %s #%s", self.entity_type, instance.id)

    def find_by_id(self, entity_id: int) -> T | None:
        with self.db.connection() as conn:
            row = conn.execute(
                f'SELECT * FROM {self._table} WHERE "id" = ?', (entity_id,)
            ).fetchone()
        return self._row_to_model(row) if row else None

    def find_by_field(self, field_name: str, value: Any) -> list[T]:
        if value is None:
            return []
        if field_name not in self.model_class.model_fields:
            logger.warning("find_by_field on unknown field %s.%s", self.entity_type, field_name)
            return []
        return [
            item for item in self.list_all() if field_matches(getattr(item, field_name), value)
        ]

    def list_all(self) -> list[T]:
        with self.db.connection() as conn:
            rows = conn.execute(f'SELECT * FROM {self._table} ORDER BY "id"').fetchall()
        return [self._row_to_model(row) for row in rows]

    def count(self) -> int:
        with self.db.connection() as conn:
            row = conn.execute(f"SELECT COUNT(*) AS n FROM {self._table}").fetchone()
        return int(row["n"])
