"""Migration loader - discover definition files and build the migration store."""

from __future__ import annotations

import importlib.util
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterable

from schemachain._naming import split_filename
from schemachain.exceptions import DuplicateIdentifierError, MalformedRecordError
from schemachain.migrations import Migration

if TYPE_CHECKING:
    from schemachain.migrations.context import MigrationContext

logger = logging.getLogger("schemachain.migrations")

Action = Callable[["MigrationContext"], object]


@dataclass(frozen=True)
class MigrationRecord:
    """One schema change: identity, position in the chain, and its actions."""

    revision: str
    down_revision: str | None
    forward: Action
    reverse: Action | None = None
    depends_on: tuple[str, ...] = ()
    description: str = ""
    path: Path | None = None

    @property
    def dependencies(self) -> tuple[str, ...]:
        """Predecessor first, then extra dependencies."""
        if self.down_revision is None:
            return self.depends_on
        return (self.down_revision, *self.depends_on)

    @property
    def is_base(self) -> bool:
        return self.down_revision is None

    def label(self) -> str:
        return f"{self.revision}, {self.description}" if self.description else self.revision


# Type for the store: revision -> record, in discovery order
MigrationStore = dict[str, MigrationRecord]


def record_from_class(
    m_cls: type[Migration],
    *,
    path: Path | None = None,
    expected_revision: str | None = None,
) -> MigrationRecord:
    """Validate a ``Migration`` subclass and turn it into a record."""
    source = str(path) if path else m_cls.__qualname__

    revision = getattr(m_cls, "revision", None)
    if not isinstance(revision, str) or not revision:
        raise MalformedRecordError("missing 'revision'", source=source)
    if expected_revision is not None and revision != expected_revision:
        raise MalformedRecordError(
            f"declares revision {revision!r} but its filename starts with {expected_revision!r}",
            source=source,
        )

    down_revision = getattr(m_cls, "down_revision", None)
    if down_revision is not None and (not isinstance(down_revision, str) or not down_revision):
        raise MalformedRecordError("'down_revision' must be a revision string or None", source=source)

    depends_on = getattr(m_cls, "depends_on", None) or []
    if isinstance(depends_on, str) or not all(isinstance(d, str) and d for d in depends_on):
        raise MalformedRecordError("'depends_on' must be a list of revision strings", source=source)

    if not m_cls.has_forward_action():
        raise MalformedRecordError("no forward action (operations or upgrade())", source=source)

    instance = m_cls()
    return MigrationRecord(
        revision=revision,
        down_revision=down_revision,
        forward=instance.upgrade,
        reverse=instance.downgrade if m_cls.has_reverse_action() else None,
        depends_on=tuple(depends_on),
        description=str(getattr(m_cls, "description", "") or ""),
        path=path,
    )


def _import_definition(entry: Path, revision: str) -> MigrationRecord:
    spec = importlib.util.spec_from_file_location(f"schemachain_versions.{entry.stem}", entry)
    if spec is None or spec.loader is None:
        raise MalformedRecordError("cannot be imported", source=str(entry))
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        raise MalformedRecordError(f"import failed: {exc}", source=str(entry)) from exc

    m_cls = getattr(module, "M", None)
    if m_cls is None or not (isinstance(m_cls, type) and issubclass(m_cls, Migration)):
        raise MalformedRecordError("no Migration subclass named 'M'", source=str(entry))
    return record_from_class(m_cls, path=entry, expected_revision=revision)


def build_store(items: Iterable[MigrationRecord | type[Migration]]) -> MigrationStore:
    """Build a store from records or Migration subclasses, keeping their order."""
    store: MigrationStore = {}
    for item in items:
        record = item if isinstance(item, MigrationRecord) else record_from_class(item)
        existing = store.get(record.revision)
        if existing is not None:
            sources = [str(r.path) for r in (existing, record) if r.path is not None]
            raise DuplicateIdentifierError(record.revision, sources=sources)
        store[record.revision] = record
    return store


def load_migrations(directory: str | Path) -> MigrationStore:
    """Discover and load every definition file in a directory.

    Files are visited in filename order; that order only breaks ties
    during resolution and never decides execution order by itself.
    """
    directory = Path(directory)
    if not directory.is_dir():
        return {}

    records: list[MigrationRecord] = []
    for entry in sorted(directory.iterdir()):
        if not entry.is_file():
            continue
        parts = split_filename(entry.name)
        if parts is None:
            continue
        records.append(_import_definition(entry, parts[0]))

    store = build_store(records)
    logger.debug("Loaded %d migration(s) from %s", len(store), directory)
    return store
