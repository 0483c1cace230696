"""Quickstart: upgrade, inspect, fail safely, and downgrade a SQLite database.

The same steps from the command line:
    schemachain --url sqlite:///demo.db --migrations-dir examples/migrations history
    schemachain --url sqlite:///demo.db --migrations-dir examples/migrations upgrade
    schemachain --url sqlite:///demo.db --migrations-dir examples/migrations current
    schemachain --url sqlite:///demo.db --migrations-dir examples/migrations downgrade base
"""

from pathlib import Path

from schemachain import MigrationRunner, create_engine, load_migrations

MIGRATIONS = Path(__file__).parent / "migrations"


def main():
    store = load_migrations(MIGRATIONS)
    engine = create_engine("sqlite://")

    with engine.connect() as conn:
        runner = MigrationRunner(conn, store, environment="production")

        # Apply the first step, then load some data the later steps will touch
        runner.upgrade("+1")
        with conn.begin():
            conn.exec_driver_sql(
                "INSERT INTO users (id, name, phone) VALUES (1, 'Alice', ' 555-0100 ')"
            )

        result = runner.upgrade()
        print(f"Applied {len(result.executed)} migration(s), now at {result.end}")

        for entry in runner.history():
            mark = "X" if entry.applied else " "
            print(f"  [{mark}] {entry.record.label()}")

        with conn.begin():
            row = conn.exec_driver_sql("SELECT phone, status FROM accounts").one()
        print(f"Normalized row: {tuple(row)}")

        # Running again is a no-op
        print(f"Second upgrade is a no-op: {runner.upgrade().noop}")

        result = runner.downgrade("base")
        print(f"Reverted {len(result.executed)} migration(s), now at {result.end or 'base'}")

    engine.dispose()


if __name__ == "__main__":
    main()
