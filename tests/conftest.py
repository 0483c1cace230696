"""Shared test fixtures: in-memory SQLite and in-memory migration records."""

from __future__ import annotations

from typing import Callable, Iterator

import pytest
import sqlalchemy as sa

from schemachain.database import create_engine
from schemachain.migrations.loader import MigrationRecord


@pytest.fixture
def engine() -> Iterator[sa.Engine]:
    eng = create_engine("sqlite://")
    yield eng
    eng.dispose()


@pytest.fixture
def conn(engine: sa.Engine) -> Iterator[sa.Connection]:
    with engine.connect() as connection:
        yield connection


@pytest.fixture
def make_record() -> Callable[..., MigrationRecord]:
    """Build records whose actions append ``(direction, revision)`` to ``calls``."""

    def _make(
        revision: str,
        down_revision: str | None,
        calls: list | None = None,
        *,
        depends_on: tuple[str, ...] = (),
        description: str = "",
    ) -> MigrationRecord:
        log = calls if calls is not None else []
        return MigrationRecord(
            revision=revision,
            down_revision=down_revision,
            forward=lambda ctx: log.append(("upgrade", revision)),
            reverse=lambda ctx: log.append(("downgrade", revision)),
            depends_on=depends_on,
            description=description,
        )

    return _make
