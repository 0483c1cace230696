"""Version tracker - persist the applied revision in the target database."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

import sqlalchemy as sa

from schemachain.config import DEFAULT_VERSION_TABLE, validate_table_name
from schemachain.exceptions import MultipleHeadsError

UPGRADE = "upgrade"
DOWNGRADE = "downgrade"
STAMP = "stamp"


@dataclass(frozen=True)
class StepLogEntry:
    """One row of the step log."""

    revision: str | None
    direction: str
    executed_at: str
    duration_ms: int


class VersionTracker:
    """Track the latest applied revision in a single-row table.

    Every method takes the connection explicitly and runs inside the
    caller's transaction, so a marker update commits or rolls back together
    with the step it describes.
    """

    def __init__(self, table_name: str = DEFAULT_VERSION_TABLE) -> None:
        validate_table_name(table_name)
        self._metadata = sa.MetaData()
        self.version_table = sa.Table(
            table_name,
            self._metadata,
            sa.Column("version_num", sa.String(64), primary_key=True),
        )
        self.log_table = sa.Table(
            f"{table_name}_log",
            self._metadata,
            sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
            sa.Column("revision", sa.String(64), nullable=True),
            sa.Column("direction", sa.String(16), nullable=False),
            sa.Column("executed_at", sa.String(40), nullable=False),
            sa.Column("duration_ms", sa.Integer, nullable=False),
        )

    @property
    def table_name(self) -> str:
        return self.version_table.name

    def ensure_schema(self, connection: sa.Connection) -> None:
        """Create the marker and log tables if they don't exist."""
        self._metadata.create_all(connection, checkfirst=True)

    def read(self, connection: sa.Connection) -> str | None:
        """Return the applied revision, or None if nothing was ever applied."""
        if not sa.inspect(connection).has_table(self.table_name):
            return None
        rows = connection.execute(sa.select(self.version_table.c.version_num)).scalars().all()
        if len(rows) > 1:
            raise MultipleHeadsError(
                f"Version table {self.table_name} holds several revisions: {', '.join(rows)}",
                revisions=list(rows),
            )
        return rows[0] if rows else None

    def write(self, connection: sa.Connection, revision: str | None) -> None:
        """Replace the marker; None clears it (database back at base)."""
        self.ensure_schema(connection)
        connection.execute(sa.delete(self.version_table))
        if revision is not None:
            connection.execute(sa.insert(self.version_table).values(version_num=revision))

    def reset(self, connection: sa.Connection) -> None:
        """Drop the marker and the step log."""
        self._metadata.drop_all(connection, checkfirst=True)

    def log_step(
        self,
        connection: sa.Connection,
        revision: str | None,
        direction: str,
        duration_ms: int = 0,
    ) -> None:
        """Append a row to the step log."""
        self.ensure_schema(connection)
        connection.execute(
            sa.insert(self.log_table).values(
                revision=revision,
                direction=direction,
                executed_at=datetime.now(timezone.utc).isoformat(),
                duration_ms=duration_ms,
            )
        )

    def steps(self, connection: sa.Connection) -> list[StepLogEntry]:
        """Return the step log, oldest first."""
        if not sa.inspect(connection).has_table(self.log_table.name):
            return []
        t = self.log_table
        result = connection.execute(
            sa.select(t.c.revision, t.c.direction, t.c.executed_at, t.c.duration_ms)
            .order_by(t.c.id)
        )
        return [StepLogEntry(*row) for row in result]
