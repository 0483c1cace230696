"""Engine construction for migration targets."""

from __future__ import annotations

import logging
from typing import Any

import sqlalchemy as sa
from sqlalchemy import event
from sqlalchemy.engine import Engine

logger = logging.getLogger("schemachain")


def _enable_sqlite_transactional_ddl(engine: Engine) -> None:
    """Let SQLAlchemy, not pysqlite, decide where transactions begin.

    The stdlib sqlite3 driver runs DDL outside any transaction, which would
    make a failed step's CREATE/ALTER survive its rollback.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, _record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn: sa.Connection) -> None:
        conn.exec_driver_sql("BEGIN")


def create_engine(url: str, **kwargs: Any) -> Engine:
    """Create an engine suitable for running migrations against ``url``."""
    engine = sa.create_engine(url, **kwargs)
    if engine.dialect.name == "sqlite":
        _enable_sqlite_transactional_ddl(engine)
    logger.debug("Created engine for %s", engine.url.render_as_string(hide_password=True))
    return engine
