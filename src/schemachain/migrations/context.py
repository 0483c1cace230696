"""Migration context - the capability handed to every forward/reverse action."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import sqlalchemy as sa
from sqlalchemy import bindparam, text

logger = logging.getLogger("schemachain.migrations")


@dataclass
class MigrationContext:
    """Database access and utilities for one migration step.

    Actions receive a context, never the runner: they may change structure,
    run arbitrary DML, and inspect the current schema to decide whether a
    change is still needed.
    """

    connection: sa.Connection
    environment: str = "development"
    revision: str | None = None
    _executed: list[str] = field(default_factory=list)

    # ── Statements ───────────────────────────────────────────────────

    def execute(self, sql: str, params: dict[str, Any] | None = None) -> sa.CursorResult:
        """Execute one SQL statement with named ``:param`` placeholders."""
        self._executed.append(sql)
        logger.debug("[%s] %s", self.revision, sql)
        return self.connection.execute(text(sql), params or {})

    @property
    def executed_statements(self) -> list[str]:
        return list(self._executed)

    # ── Introspection ────────────────────────────────────────────────

    def _inspector(self) -> sa.Inspector:
        # Fresh inspector each time: its cache would hide this step's DDL.
        return sa.inspect(self.connection)

    def has_table(self, table: str) -> bool:
        return self._inspector().has_table(table)

    def columns(self, table: str) -> list[str]:
        """Column names of ``table`` (empty if the table does not exist)."""
        inspector = self._inspector()
        if not inspector.has_table(table):
            return []
        return [col["name"] for col in inspector.get_columns(table)]

    def has_column(self, table: str, column: str) -> bool:
        return column in self.columns(table)

    def has_index(self, table: str, index: str) -> bool:
        inspector = self._inspector()
        if not inspector.has_table(table):
            return False
        return any(ix["name"] == index for ix in inspector.get_indexes(table))

    # ── Environment ──────────────────────────────────────────────────

    def is_environment(self, *names: str) -> bool:
        """True when the run targets one of the named environments."""
        return self.environment in names

    # ── Data migrations ──────────────────────────────────────────────

    def batched_update(
        self,
        table: str,
        assignments: str,
        *,
        where: str | None = None,
        key: str = "id",
        batch_size: int = 1000,
        params: dict[str, Any] | None = None,
    ) -> int:
        """Run ``UPDATE table SET assignments`` one page of keys at a time.

        Pages are selected by keyset (``key > last``) so rows already
        updated are never revisited, even when the update changes whether
        they match ``where``. Returns the number of updated rows.
        """
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        base_params = dict(params or {})
        update = text(
            f"UPDATE {table} SET {assignments} WHERE {key} IN :_keys"
        ).bindparams(bindparam("_keys", expanding=True))

        total = 0
        last_key: Any = None
        while True:
            clauses = [f"({where})"] if where else []
            select_params = dict(base_params, _batch_size=batch_size)
            if last_key is not None:
                clauses.append(f"{key} > :_last_key")
                select_params["_last_key"] = last_key
            sql = f"SELECT {key} FROM {table}"
            if clauses:
                sql += " WHERE " + " AND ".join(clauses)
            sql += f" ORDER BY {key} LIMIT :_batch_size"

            keys = [row[0] for row in self.connection.execute(text(sql), select_params)]
            if not keys:
                break
            result = self.connection.execute(update, dict(base_params, _keys=keys))
            total += result.rowcount
            last_key = keys[-1]
            logger.debug("[%s] Updated %d row(s) of %s", self.revision, total, table)
            if len(keys) < batch_size:
                break
        return total
