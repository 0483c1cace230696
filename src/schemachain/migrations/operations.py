"""Migration operations - idempotent schema changes with forward and backward actions.

Every structural change checks the live schema first, so re-running a step
that was partially applied by hand (or on a database without transactional
DDL) skips what is already there instead of failing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from schemachain.exceptions import IrreversibleMigrationError

if TYPE_CHECKING:
    from schemachain.migrations.context import MigrationContext

logger = logging.getLogger("schemachain.migrations")


def _skip(ctx: MigrationContext, message: str) -> None:
    logger.debug("[%s] Skipping: %s", ctx.revision, message)


def _column_ddl(column: str, type_: str, nullable: bool, server_default: str | None) -> str:
    parts = [column, type_]
    if not nullable:
        parts.append("NOT NULL")
    if server_default is not None:
        parts.append(f"DEFAULT {server_default}")
    return " ".join(parts)


def _create_table(ctx: MigrationContext, name: str, columns: list[tuple[str, str]]) -> None:
    if ctx.has_table(name):
        _skip(ctx, f"table {name} already exists")
        return
    parts = ", ".join(f"{col} {tp}" for col, tp in columns)
    ctx.execute(f"CREATE TABLE {name} ({parts})")


def _drop_table(ctx: MigrationContext, name: str) -> None:
    if not ctx.has_table(name):
        _skip(ctx, f"table {name} does not exist")
        return
    ctx.execute(f"DROP TABLE {name}")


def _rename_table(ctx: MigrationContext, old: str, new: str) -> None:
    if ctx.has_table(new) and not ctx.has_table(old):
        _skip(ctx, f"table {old} already renamed to {new}")
        return
    ctx.execute(f"ALTER TABLE {old} RENAME TO {new}")


def _add_column(
    ctx: MigrationContext,
    table: str,
    column: str,
    type_: str,
    nullable: bool,
    server_default: str | None,
) -> None:
    if ctx.has_column(table, column):
        _skip(ctx, f"column {table}.{column} already exists")
        return
    ddl = _column_ddl(column, type_, nullable, server_default)
    ctx.execute(f"ALTER TABLE {table} ADD COLUMN {ddl}")


def _drop_column(ctx: MigrationContext, table: str, column: str) -> None:
    if not ctx.has_column(table, column):
        _skip(ctx, f"column {table}.{column} does not exist")
        return
    ctx.execute(f"ALTER TABLE {table} DROP COLUMN {column}")


def _rename_column(ctx: MigrationContext, table: str, old: str, new: str) -> None:
    if ctx.has_column(table, new) and not ctx.has_column(table, old):
        _skip(ctx, f"column {table}.{old} already renamed to {new}")
        return
    ctx.execute(f"ALTER TABLE {table} RENAME COLUMN {old} TO {new}")


def _create_index(
    ctx: MigrationContext, name: str, table: str, columns: list[str], unique: bool
) -> None:
    if ctx.has_index(table, name):
        _skip(ctx, f"index {name} already exists")
        return
    kind = "UNIQUE INDEX" if unique else "INDEX"
    ctx.execute(f"CREATE {kind} {name} ON {table} ({', '.join(columns)})")


def _drop_index(ctx: MigrationContext, name: str, table: str) -> None:
    if not ctx.has_index(table, name):
        _skip(ctx, f"index {name} does not exist")
        return
    ctx.execute(f"DROP INDEX {name}")


@dataclass(frozen=True)
class CreateTable:
    """Create a new table."""

    name: str
    columns: list[tuple[str, str]]  # [(column, "INTEGER PRIMARY KEY"), ...]

    def forward(self, ctx: MigrationContext) -> None:
        _create_table(ctx, self.name, self.columns)

    def backward(self, ctx: MigrationContext) -> None:
        _drop_table(ctx, self.name)

    def describe(self) -> str:
        return f"Create table {self.name}"


@dataclass(frozen=True)
class DropTable:
    """Drop a table (stores columns so the structure can be recreated).

    Rows are not restored by the backward action.
    """

    name: str
    columns: list[tuple[str, str]]

    def forward(self, ctx: MigrationContext) -> None:
        _drop_table(ctx, self.name)

    def backward(self, ctx: MigrationContext) -> None:
        _create_table(ctx, self.name, self.columns)

    def describe(self) -> str:
        return f"Drop table {self.name}"


@dataclass(frozen=True)
class RenameTable:
    old_name: str
    new_name: str

    def forward(self, ctx: MigrationContext) -> None:
        _rename_table(ctx, self.old_name, self.new_name)

    def backward(self, ctx: MigrationContext) -> None:
        _rename_table(ctx, self.new_name, self.old_name)

    def describe(self) -> str:
        return f"Rename table {self.old_name} to {self.new_name}"


@dataclass(frozen=True)
class AddColumn:
    """Add a column.

    A NOT NULL column must carry a server default so existing rows get a
    value; otherwise add it nullable, backfill, and tighten it later.
    """

    table: str
    column: str
    type: str
    nullable: bool = True
    server_default: str | None = None

    def __post_init__(self) -> None:
        if not self.nullable and self.server_default is None:
            raise ValueError(
                f"NOT NULL column {self.table}.{self.column} needs a server_default"
            )

    def forward(self, ctx: MigrationContext) -> None:
        _add_column(ctx, self.table, self.column, self.type, self.nullable, self.server_default)

    def backward(self, ctx: MigrationContext) -> None:
        _drop_column(ctx, self.table, self.column)

    def describe(self) -> str:
        return f"Add column {self.table}.{self.column}"


@dataclass(frozen=True)
class DropColumn:
    """Drop a column (stores its definition; values are not restored)."""

    table: str
    column: str
    type: str
    nullable: bool = True
    server_default: str | None = None

    def forward(self, ctx: MigrationContext) -> None:
        _drop_column(ctx, self.table, self.column)

    def backward(self, ctx: MigrationContext) -> None:
        _add_column(ctx, self.table, self.column, self.type, self.nullable, self.server_default)

    def describe(self) -> str:
        return f"Drop column {self.table}.{self.column}"


@dataclass(frozen=True)
class RenameColumn:
    table: str
    old_name: str
    new_name: str

    def forward(self, ctx: MigrationContext) -> None:
        _rename_column(ctx, self.table, self.old_name, self.new_name)

    def backward(self, ctx: MigrationContext) -> None:
        _rename_column(ctx, self.table, self.new_name, self.old_name)

    def describe(self) -> str:
        return f"Rename column {self.table}.{self.old_name} to {self.new_name}"


@dataclass(frozen=True)
class CreateIndex:
    """Create an index, optionally skipped in some environments."""

    name: str
    table: str
    columns: list[str]
    unique: bool = False
    skip_environments: tuple[str, ...] = ()

    def forward(self, ctx: MigrationContext) -> None:
        if ctx.is_environment(*self.skip_environments):
            _skip(ctx, f"index {self.name} in environment {ctx.environment}")
            return
        _create_index(ctx, self.name, self.table, self.columns, self.unique)

    def backward(self, ctx: MigrationContext) -> None:
        _drop_index(ctx, self.name, self.table)

    def describe(self) -> str:
        return f"Create index {self.name} on {self.table}({', '.join(self.columns)})"


@dataclass(frozen=True)
class DropIndex:
    """Drop an index (stores its definition for reversibility)."""

    name: str
    table: str
    columns: list[str]
    unique: bool = False

    def forward(self, ctx: MigrationContext) -> None:
        _drop_index(ctx, self.name, self.table)

    def backward(self, ctx: MigrationContext) -> None:
        _create_index(ctx, self.name, self.table, self.columns, self.unique)

    def describe(self) -> str:
        return f"Drop index {self.name}"


@dataclass(frozen=True)
class RunSQL:
    """Execute raw SQL (escape hatch).

    ``backward=None`` marks the operation irreversible; ``backward=[]``
    means there is nothing to undo.
    """

    forward_sql: list[str]
    backward_sql: list[str] | None = None

    def forward(self, ctx: MigrationContext) -> None:
        for sql in self.forward_sql:
            ctx.execute(sql)

    def backward(self, ctx: MigrationContext) -> None:
        if self.backward_sql is None:
            raise IrreversibleMigrationError(f"{self.describe()} has no backward SQL")
        for sql in self.backward_sql:
            ctx.execute(sql)

    def describe(self) -> str:
        n = len(self.forward_sql)
        return f"Run {n} SQL statement{'s' if n != 1 else ''}"


@dataclass(frozen=True)
class RunPython:
    """Call Python functions with the migration context."""

    forward_func: Callable[[MigrationContext], object]
    backward_func: Callable[[MigrationContext], object] | None = None

    def forward(self, ctx: MigrationContext) -> None:
        self.forward_func(ctx)

    def backward(self, ctx: MigrationContext) -> None:
        if self.backward_func is None:
            raise IrreversibleMigrationError(f"{self.describe()} has no backward function")
        self.backward_func(ctx)

    def describe(self) -> str:
        return f"Run {getattr(self.forward_func, '__name__', 'function')}"


# Union type for all operations
Operation = (
    CreateTable
    | DropTable
    | RenameTable
    | AddColumn
    | DropColumn
    | RenameColumn
    | CreateIndex
    | DropIndex
    | RunSQL
    | RunPython
)
