"""Tests for schemachain.migrations.recorder - the version marker and step log."""

import pytest
import sqlalchemy as sa

from schemachain.exceptions import ConfigurationError, MultipleHeadsError
from schemachain.migrations.recorder import VersionTracker


class TestVersionTracker:
    def test_read_before_first_run(self, conn):
        tracker = VersionTracker()
        with conn.begin():
            assert tracker.read(conn) is None
            assert not sa.inspect(conn).has_table("schemachain_version")

    def test_write_then_read(self, conn):
        tracker = VersionTracker()
        with conn.begin():
            tracker.write(conn, "aaa111")
        with conn.begin():
            assert tracker.read(conn) == "aaa111"

    def test_write_replaces_single_row(self, conn):
        tracker = VersionTracker()
        with conn.begin():
            tracker.write(conn, "aaa111")
            tracker.write(conn, "bbb222")
        with conn.begin():
            rows = conn.execute(sa.text("SELECT version_num FROM schemachain_version")).all()
        assert [r[0] for r in rows] == ["bbb222"]

    def test_write_none_clears(self, conn):
        tracker = VersionTracker()
        with conn.begin():
            tracker.write(conn, "aaa111")
            tracker.write(conn, None)
        with conn.begin():
            assert tracker.read(conn) is None

    def test_write_rolls_back_with_transaction(self, conn):
        tracker = VersionTracker()
        with conn.begin():
            tracker.write(conn, "aaa111")
        with pytest.raises(RuntimeError):
            with conn.begin():
                tracker.write(conn, "bbb222")
                raise RuntimeError("step failed")
        with conn.begin():
            assert tracker.read(conn) == "aaa111"

    def test_custom_table_name(self, conn):
        tracker = VersionTracker("app_version")
        with conn.begin():
            tracker.write(conn, "aaa111")
            assert sa.inspect(conn).has_table("app_version")
            assert sa.inspect(conn).has_table("app_version_log")

    def test_invalid_table_name(self):
        with pytest.raises(ConfigurationError):
            VersionTracker("version; DROP TABLE users")

    def test_several_rows_is_an_error(self, conn):
        tracker = VersionTracker()
        with conn.begin():
            tracker.ensure_schema(conn)
            conn.execute(sa.text("INSERT INTO schemachain_version VALUES ('a'), ('b')"))
        with pytest.raises(MultipleHeadsError):
            with conn.begin():
                tracker.read(conn)

    def test_reset(self, conn):
        tracker = VersionTracker()
        with conn.begin():
            tracker.write(conn, "aaa111")
        with conn.begin():
            tracker.reset(conn)
        with conn.begin():
            assert tracker.read(conn) is None
            assert tracker.steps(conn) == []


class TestStepLog:
    def test_empty(self, conn):
        with conn.begin():
            assert VersionTracker().steps(conn) == []

    def test_appends_in_order(self, conn):
        tracker = VersionTracker()
        with conn.begin():
            tracker.log_step(conn, "aaa111", "upgrade", 12)
            tracker.log_step(conn, "aaa111", "downgrade", 3)
            tracker.log_step(conn, None, "stamp")
        with conn.begin():
            steps = tracker.steps(conn)
        assert [(s.revision, s.direction, s.duration_ms) for s in steps] == [
            ("aaa111", "upgrade", 12),
            ("aaa111", "downgrade", 3),
            (None, "stamp", 0),
        ]
        assert steps[0].executed_at.endswith("+00:00")
