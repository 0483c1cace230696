"""Migration runner - apply and revert ranges of the chain, one transaction per step."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field

import sqlalchemy as sa

from schemachain.exceptions import (
    AlreadyAtTarget,
    IrreversibleMigrationError,
    MigrationCancelledError,
    StepExecutionError,
)
from schemachain.migrations.context import MigrationContext
from schemachain.migrations.loader import MigrationRecord, MigrationStore
from schemachain.migrations.recorder import DOWNGRADE, STAMP, UPGRADE, VersionTracker
from schemachain.migrations.resolver import HEAD, ChainResolver

logger = logging.getLogger("schemachain.migrations")


@dataclass
class RunResult:
    """Outcome of an upgrade or downgrade."""

    direction: str
    start: str | None
    end: str | None
    executed: list[str] = field(default_factory=list)
    noop: bool = False


@dataclass(frozen=True)
class HistoryEntry:
    record: MigrationRecord
    applied: bool
    is_current: bool
    is_head: bool


class MigrationRunner:
    """Execute migration steps against one connection.

    The connection must not be inside a transaction when a command starts;
    the runner opens one per step and commits it before the next begins.
    Prevent two runners from targeting the same database at once; nothing
    here arbitrates that.
    """

    def __init__(
        self,
        connection: sa.Connection,
        store: MigrationStore,
        tracker: VersionTracker | None = None,
        *,
        environment: str = "development",
        cancel_event: threading.Event | None = None,
    ) -> None:
        self._conn = connection
        self._resolver = ChainResolver(store)
        self._tracker = tracker or VersionTracker()
        self._environment = environment
        self._cancel_event = cancel_event

    @property
    def resolver(self) -> ChainResolver:
        return self._resolver

    @property
    def tracker(self) -> VersionTracker:
        return self._tracker

    # ── Queries ──────────────────────────────────────────────────────

    def current(self) -> str | None:
        """The revision recorded in the database (None = base)."""
        with self._conn.begin():
            return self._tracker.read(self._conn)

    def heads(self) -> list[MigrationRecord]:
        return self._resolver.heads()

    def history(self) -> list[HistoryEntry]:
        """Every record in execution order with its applied state."""
        current = self.current()
        order = self._resolver.linear_order()
        cur = self._resolver.position(current)
        heads = {h.revision for h in self._resolver.heads()}
        return [
            HistoryEntry(
                record=record,
                applied=i <= cur,
                is_current=record.revision == current,
                is_head=record.revision in heads,
            )
            for i, record in enumerate(order)
        ]

    # ── Commands ─────────────────────────────────────────────────────

    def upgrade(self, target: str | None = HEAD) -> RunResult:
        """Apply every step after the current revision up to ``target``."""
        start = self.current()
        try:
            path = self._resolver.order(start, target)
        except AlreadyAtTarget:
            logger.info("Already at %s; nothing to upgrade", start or "base")
            return RunResult(UPGRADE, start, start, noop=True)

        marker = start
        executed: list[str] = []
        for record in path:
            self._check_cancelled(executed, marker)
            logger.info("Running upgrade %s -> %s", marker or "base", record.label())
            self._run_step(record, UPGRADE, before=marker, after=record.revision)
            marker = record.revision
            executed.append(record.revision)
        return RunResult(UPGRADE, start, marker, executed)

    def downgrade(self, target: str | None = None) -> RunResult:
        """Revert steps back to (not including) ``target``; default one step."""
        start = self.current()
        try:
            path = self._resolver.downgrade_path(start, target)
        except AlreadyAtTarget:
            logger.info("Already at %s; nothing to downgrade", start or "base")
            return RunResult(DOWNGRADE, start, start, noop=True)

        marker = start
        executed: list[str] = []
        for record in path:
            self._check_cancelled(executed, marker)
            after = self._resolver.previous(record.revision)
            logger.info("Running downgrade %s -> %s", record.label(), after or "base")
            self._run_step(record, DOWNGRADE, before=marker, after=after)
            marker = after
            executed.append(record.revision)
        return RunResult(DOWNGRADE, start, marker, executed)

    def stamp(self, identifier: str | None) -> str | None:
        """Set the marker without running any action."""
        current = self.current()
        revision = self._resolver.resolve(identifier, current)
        self._resolver.position(revision)
        logger.warning(
            "Stamping database at %s without running migrations; "
            "nothing verifies that its changes are actually applied",
            revision or "base",
        )
        with self._conn.begin():
            self._tracker.write(self._conn, revision)
            self._tracker.log_step(self._conn, revision, STAMP)
        return revision

    # ── Internals ────────────────────────────────────────────────────

    def _check_cancelled(self, executed: list[str], marker: str | None) -> None:
        if self._cancel_event is not None and self._cancel_event.is_set():
            logger.warning("Cancelled; database left at %s", marker or "base")
            raise MigrationCancelledError(list(executed), marker=marker)

    def _run_step(
        self,
        record: MigrationRecord,
        direction: str,
        *,
        before: str | None,
        after: str | None,
    ) -> None:
        action = record.forward if direction == UPGRADE else record.reverse
        ctx = MigrationContext(
            self._conn, environment=self._environment, revision=record.revision
        )
        started = time.monotonic()
        try:
            with self._conn.begin():
                if action is None:
                    raise IrreversibleMigrationError(
                        f"Revision {record.revision} has no reverse action"
                    )
                action(ctx)
                duration_ms = int((time.monotonic() - started) * 1000)
                self._tracker.write(self._conn, after)
                self._tracker.log_step(self._conn, record.revision, direction, duration_ms)
        except Exception as exc:
            logger.error(
                "%s of %s failed; rolled back, database left at %s",
                direction.capitalize(), record.revision, before or "base",
            )
            raise StepExecutionError(record.revision, direction, exc, marker=before) from exc
        logger.debug("%s of %s took %d ms", direction.capitalize(), record.revision, duration_ms)
