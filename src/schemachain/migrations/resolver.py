"""Chain resolver - order migration records over their dependency graph.

The graph has one edge per predecessor and one per extra dependency. A
stable topological traversal (ties broken by discovery order) gives a
single linear order; every upgrade or downgrade is a contiguous slice of
it, so one marker value always means "this record and everything before
it in the order has been applied".
"""

from __future__ import annotations

import heapq
import logging
import re
from collections import defaultdict

from schemachain.exceptions import (
    AlreadyAtTarget,
    BrokenChainError,
    CycleDetectedError,
    InvalidTargetError,
    MultipleHeadsError,
    UnknownRevisionError,
)
from schemachain.migrations.loader import MigrationRecord, MigrationStore

HEAD = "head"
BASE = "base"

_RELATIVE_RE = re.compile(r"^([+-])(\d+)$")

logger = logging.getLogger("schemachain.migrations")


class ChainResolver:
    """Validate a migration store and compute execution paths through it."""

    def __init__(self, store: MigrationStore) -> None:
        self._store = store
        self._order: list[MigrationRecord] | None = None
        self._positions: dict[str, int] = {}

    @property
    def store(self) -> MigrationStore:
        return self._store

    # ── Graph ────────────────────────────────────────────────────────

    def _check_references(self) -> None:
        for record in self._store.values():
            for dep in record.dependencies:
                if dep not in self._store:
                    raise BrokenChainError(record.revision, dep)

    def _topological(self) -> list[MigrationRecord]:
        revisions = list(self._store)
        discovery = {rev: i for i, rev in enumerate(revisions)}
        dependents: dict[str, list[str]] = defaultdict(list)
        waiting: dict[str, int] = {}
        for rev, record in self._store.items():
            deps = set(record.dependencies)
            waiting[rev] = len(deps)
            for dep in deps:
                dependents[dep].append(rev)

        ready = [discovery[rev] for rev, n in waiting.items() if n == 0]
        heapq.heapify(ready)
        ordered: list[MigrationRecord] = []
        while ready:
            rev = revisions[heapq.heappop(ready)]
            ordered.append(self._store[rev])
            for child in dependents[rev]:
                waiting[child] -= 1
                if waiting[child] == 0:
                    heapq.heappush(ready, discovery[child])

        if len(ordered) < len(revisions):
            raise CycleDetectedError([rev for rev in revisions if waiting[rev] > 0])
        return ordered

    def linear_order(self) -> list[MigrationRecord]:
        """Every record in execution order.

        Raises BrokenChainError, CycleDetectedError, or MultipleHeadsError
        when the store has more than one root.
        """
        if self._order is None:
            self._check_references()
            ordered = self._topological()
            bases = [r.revision for r in ordered if r.is_base]
            if len(bases) > 1:
                raise MultipleHeadsError(
                    f"Multiple base revisions: {', '.join(bases)}", revisions=bases
                )
            self._order = ordered
            self._positions = {r.revision: i for i, r in enumerate(ordered)}
        return list(self._order)

    def validate(self) -> None:
        self.linear_order()

    def heads(self) -> list[MigrationRecord]:
        """Records that no other record names as its predecessor."""
        order = self.linear_order()
        parents = {r.down_revision for r in order if r.down_revision is not None}
        return [r for r in order if r.revision not in parents]

    def bases(self) -> list[MigrationRecord]:
        return [r for r in self.linear_order() if r.is_base]

    def get(self, revision: str) -> MigrationRecord:
        try:
            return self._store[revision]
        except KeyError:
            raise UnknownRevisionError(f"No such revision: {revision!r}") from None

    # ── Identifier resolution ────────────────────────────────────────

    def _single_head(self) -> str | None:
        heads = self.heads()
        if len(heads) > 1:
            revs = [h.revision for h in heads]
            raise MultipleHeadsError(
                f"Multiple heads: {', '.join(revs)}; name a target revision",
                revisions=revs,
            )
        return heads[0].revision if heads else None

    def position(self, revision: str | None) -> int:
        """Index in the linear order; -1 for base (nothing applied)."""
        self.linear_order()
        if revision is None:
            return -1
        try:
            return self._positions[revision]
        except KeyError:
            raise UnknownRevisionError(
                f"Revision {revision!r} is not in the migration store"
            ) from None

    def resolve(self, identifier: str | None, current: str | None = None) -> str | None:
        """Turn a user-supplied target into a revision (None means base).

        Accepts a full revision, a unique prefix, ``head``, ``base`` or a
        relative step ``+N``/``-N`` from ``current``.
        """
        if identifier is None or identifier == BASE:
            return None
        if identifier == HEAD:
            return self._single_head()

        relative = _RELATIVE_RE.match(identifier)
        if relative:
            order = self.linear_order()
            steps = int(relative.group(2))
            delta = steps if relative.group(1) == "+" else -steps
            pos = self.position(current) + delta
            if pos < -1 or pos >= len(order):
                raise InvalidTargetError(
                    f"Relative target {identifier} from {current or 'base'} is out of range"
                )
            return order[pos].revision if pos >= 0 else None

        if identifier in self._store:
            return identifier
        matches = [rev for rev in self._store if rev.startswith(identifier)]
        if len(matches) == 1:
            return matches[0]
        if matches:
            raise UnknownRevisionError(
                f"Revision prefix {identifier!r} is ambiguous: {', '.join(matches)}"
            )
        raise UnknownRevisionError(f"No such revision: {identifier!r}")

    def previous(self, revision: str) -> str | None:
        """The revision before ``revision`` in the linear order."""
        pos = self.position(revision)
        return self._order[pos - 1].revision if pos > 0 else None

    def ancestors(self, revision: str) -> set[str]:
        """Every revision ``revision`` depends on, directly or transitively."""
        seen: set[str] = set()
        stack = list(self.get(revision).dependencies)
        while stack:
            rev = stack.pop()
            if rev is None or rev in seen:
                continue
            seen.add(rev)
            stack.extend(self.get(rev).dependencies)
        return seen

    # ── Paths ────────────────────────────────────────────────────────

    def order(self, current: str | None, target: str | None = HEAD) -> list[MigrationRecord]:
        """Records to upgrade through: strictly after current, up to target."""
        order = self.linear_order()
        cur = self.position(current)
        target_rev = self.resolve(target, current)
        tgt = self.position(target_rev)
        if tgt == cur:
            raise AlreadyAtTarget(target_rev)
        if tgt < cur:
            raise InvalidTargetError(
                f"Target {target_rev or BASE} is behind current revision {current}; "
                "use downgrade"
            )
        path = order[cur + 1:tgt + 1]
        if target_rev is not None:
            needed = self.ancestors(target_rev) | {target_rev}
            unrelated = [r.revision for r in path if r.revision not in needed]
            if unrelated:
                logger.warning(
                    "Upgrade to %s also applies %s, which %s not ancestors of the target",
                    target_rev, ", ".join(unrelated), "is" if len(unrelated) == 1 else "are",
                )
        return path

    upgrade_path = order

    def downgrade_path(
        self, current: str | None, target: str | None = None
    ) -> list[MigrationRecord]:
        """Records to revert, newest first, back to just after target.

        ``target=None`` means one step back.
        """
        order = self.linear_order()
        cur = self.position(current)
        if target is None:
            if cur == -1:
                raise AlreadyAtTarget(None)
            tgt = cur - 1
        else:
            tgt = self.position(self.resolve(target, current))
        if tgt == cur:
            raise AlreadyAtTarget(current)
        if tgt > cur:
            raise InvalidTargetError(
                f"Target {order[tgt].revision} is ahead of current revision "
                f"{current or BASE}; use upgrade"
            )
        return list(reversed(order[tgt + 1:cur + 1]))
