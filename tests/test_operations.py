"""Tests for schemachain.migrations.operations - idempotent DDL against SQLite."""

import pytest

from schemachain.exceptions import IrreversibleMigrationError
from schemachain.migrations.context import MigrationContext
from schemachain.migrations.operations import (
    AddColumn,
    CreateIndex,
    CreateTable,
    DropColumn,
    DropIndex,
    DropTable,
    RenameColumn,
    RenameTable,
    RunPython,
    RunSQL,
)


@pytest.fixture
def ctx(conn):
    with conn.begin():
        yield MigrationContext(conn, environment="development", revision="test")


_USERS = CreateTable("users", [("id", "INTEGER PRIMARY KEY"), ("email", "TEXT")])


# ── Tables ───────────────────────────────────────────────────────────


class TestCreateTable:
    def test_forward_and_backward(self, ctx):
        _USERS.forward(ctx)
        assert ctx.has_table("users")
        assert ctx.columns("users") == ["id", "email"]
        _USERS.backward(ctx)
        assert not ctx.has_table("users")

    def test_forward_is_idempotent(self, ctx):
        _USERS.forward(ctx)
        _USERS.forward(ctx)
        assert ctx.executed_statements == ["CREATE TABLE users (id INTEGER PRIMARY KEY, email TEXT)"]

    def test_backward_when_missing_is_noop(self, ctx):
        _USERS.backward(ctx)
        assert ctx.executed_statements == []

    def test_describe(self):
        assert _USERS.describe() == "Create table users"


class TestDropTable:
    def test_restores_structure(self, ctx):
        _USERS.forward(ctx)
        op = DropTable("users", [("id", "INTEGER PRIMARY KEY"), ("email", "TEXT")])
        op.forward(ctx)
        assert not ctx.has_table("users")
        op.backward(ctx)
        assert ctx.columns("users") == ["id", "email"]


class TestRenameTable:
    def test_rename_and_back(self, ctx):
        _USERS.forward(ctx)
        op = RenameTable("users", "accounts")
        op.forward(ctx)
        assert ctx.has_table("accounts") and not ctx.has_table("users")
        op.backward(ctx)
        assert ctx.has_table("users") and not ctx.has_table("accounts")

    def test_rerun_after_rename_skips(self, ctx):
        _USERS.forward(ctx)
        op = RenameTable("users", "accounts")
        op.forward(ctx)
        op.forward(ctx)
        assert ctx.has_table("accounts")


# ── Columns ──────────────────────────────────────────────────────────


class TestAddColumn:
    def test_nullable(self, ctx):
        _USERS.forward(ctx)
        AddColumn("users", "phone", "TEXT").forward(ctx)
        assert ctx.has_column("users", "phone")

    def test_not_null_requires_default(self):
        with pytest.raises(ValueError, match="server_default"):
            AddColumn("users", "status", "TEXT", nullable=False)

    def test_not_null_with_default_fills_existing_rows(self, ctx):
        _USERS.forward(ctx)
        ctx.execute("INSERT INTO users (id, email) VALUES (1, 'a@example.com')")
        AddColumn("users", "status", "TEXT", nullable=False, server_default="'active'").forward(ctx)
        assert ctx.execute("SELECT status FROM users").scalar_one() == "active"

    def test_idempotent(self, ctx):
        _USERS.forward(ctx)
        op = AddColumn("users", "phone", "TEXT")
        op.forward(ctx)
        op.forward(ctx)
        assert ctx.columns("users").count("phone") == 1

    def test_backward_drops(self, ctx):
        _USERS.forward(ctx)
        op = AddColumn("users", "phone", "TEXT")
        op.forward(ctx)
        op.backward(ctx)
        assert not ctx.has_column("users", "phone")


class TestDropColumn:
    def test_round_trip(self, ctx):
        _USERS.forward(ctx)
        op = DropColumn("users", "email", "TEXT")
        op.forward(ctx)
        assert not ctx.has_column("users", "email")
        op.forward(ctx)
        op.backward(ctx)
        assert ctx.has_column("users", "email")


class TestRenameColumn:
    def test_round_trip(self, ctx):
        _USERS.forward(ctx)
        op = RenameColumn("users", "email", "email_address")
        op.forward(ctx)
        assert ctx.columns("users") == ["id", "email_address"]
        op.forward(ctx)
        op.backward(ctx)
        assert ctx.columns("users") == ["id", "email"]


# ── Indexes ──────────────────────────────────────────────────────────


class TestIndexes:
    def test_create_and_drop(self, ctx):
        _USERS.forward(ctx)
        op = CreateIndex("ix_users_email", "users", ["email"], unique=True)
        op.forward(ctx)
        op.forward(ctx)
        assert ctx.has_index("users", "ix_users_email")
        op.backward(ctx)
        assert not ctx.has_index("users", "ix_users_email")

    def test_skipped_in_listed_environment(self, ctx):
        _USERS.forward(ctx)
        CreateIndex("ix_users_email", "users", ["email"], skip_environments=("development",)).forward(ctx)
        assert not ctx.has_index("users", "ix_users_email")

    def test_created_outside_listed_environment(self, conn):
        with conn.begin():
            ctx = MigrationContext(conn, environment="production")
            _USERS.forward(ctx)
            CreateIndex("ix_users_email", "users", ["email"], skip_environments=("development",)).forward(ctx)
            assert ctx.has_index("users", "ix_users_email")

    def test_drop_index_restores(self, ctx):
        _USERS.forward(ctx)
        CreateIndex("ix_users_email", "users", ["email"]).forward(ctx)
        op = DropIndex("ix_users_email", "users", ["email"])
        op.forward(ctx)
        assert not ctx.has_index("users", "ix_users_email")
        op.backward(ctx)
        assert ctx.has_index("users", "ix_users_email")

    def test_has_index_missing_table(self, ctx):
        assert not ctx.has_index("nope", "ix_nope")


# ── Escape hatches ───────────────────────────────────────────────────


class TestRunSQL:
    def test_forward_and_backward(self, ctx):
        op = RunSQL(["CREATE TABLE t (id INTEGER)"], ["DROP TABLE t"])
        op.forward(ctx)
        assert ctx.has_table("t")
        op.backward(ctx)
        assert not ctx.has_table("t")

    def test_irreversible(self, ctx):
        with pytest.raises(IrreversibleMigrationError):
            RunSQL(["SELECT 1"]).backward(ctx)

    def test_empty_backward_is_noop(self, ctx):
        RunSQL(["SELECT 1"], []).backward(ctx)
        assert ctx.executed_statements == []

    def test_describe(self):
        assert RunSQL(["SELECT 1"]).describe() == "Run 1 SQL statement"
        assert RunSQL(["SELECT 1", "SELECT 2"]).describe() == "Run 2 SQL statements"


class TestRunPython:
    def test_calls_functions(self, ctx):
        seen = []

        def normalize(c):
            seen.append(("fwd", c.revision))

        op = RunPython(normalize, lambda c: seen.append(("bwd", c.revision)))
        op.forward(ctx)
        op.backward(ctx)
        assert seen == [("fwd", "test"), ("bwd", "test")]
        assert op.describe() == "Run normalize"

    def test_irreversible(self, ctx):
        with pytest.raises(IrreversibleMigrationError):
            RunPython(lambda c: None).backward(ctx)
