"""CLI entry point for the migration system.

Exit status: 0 on success, 1 on an error before anything ran, 3 when the
database was already at the target, 4 when a step failed mid-run, 130 when
the run was cancelled between steps.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator

import sqlalchemy as sa

from schemachain._naming import new_revision_id, validate_revision_id
from schemachain.config import MigrationConfig
from schemachain.database import create_engine
from schemachain.exceptions import (
    ChainError,
    MigrationCancelledError,
    SchemaChainError,
    StepExecutionError,
)
from schemachain.migrations.executor import MigrationRunner, RunResult
from schemachain.migrations.loader import load_migrations
from schemachain.migrations.recorder import VersionTracker
from schemachain.migrations.resolver import ChainResolver
from schemachain.migrations.writer import generate_migration

logger = logging.getLogger("schemachain")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NOOP = 3
EXIT_STEP_FAILED = 4
EXIT_CANCELLED = 130


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for CLI."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _config(args: argparse.Namespace) -> MigrationConfig:
    return MigrationConfig.from_env().override(
        url=args.url,
        migrations_dir=args.migrations_dir,
        environment=args.env,
        version_table=args.version_table,
    )


@contextmanager
def _cancel_on_signal() -> Iterator[threading.Event]:
    """Turn SIGINT/SIGTERM into a cancellation checked between steps."""
    event = threading.Event()
    if threading.current_thread() is not threading.main_thread():
        yield event
        return

    def _handler(signum: int, _frame: object) -> None:
        logger.warning("Received %s; stopping after the current step", signal.Signals(signum).name)
        event.set()

    previous = {sig: signal.signal(sig, _handler) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        yield event
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


def _with_runner(
    args: argparse.Namespace,
    body: Callable[[MigrationRunner], int],
    *,
    cancel_event: threading.Event | None = None,
) -> int:
    """Load the store, connect, and hand a runner to ``body``."""
    config = _config(args)
    store = load_migrations(config.migrations_dir)
    engine = create_engine(config.require_url())
    try:
        with engine.connect() as conn:
            runner = MigrationRunner(
                conn,
                store,
                VersionTracker(config.version_table),
                environment=config.environment,
                cancel_event=cancel_event,
            )
            return body(runner)
    finally:
        engine.dispose()


def _report(result: RunResult, verb: str, mark: str) -> int:
    if result.noop:
        print(f"Already at {result.end or 'base'}; nothing to {verb}.")
        return EXIT_NOOP
    print(f"{verb.capitalize()}d {len(result.executed)} migration(s):")
    for revision in result.executed:
        print(f"  [{mark}] {revision}")
    print(f"Current revision: {result.end or 'base'}")
    return EXIT_OK


def _cmd_upgrade(args: argparse.Namespace) -> int:
    """Apply pending migrations up to a target."""
    with _cancel_on_signal() as event:
        return _with_runner(
            args,
            lambda runner: _report(runner.upgrade(args.target), "upgrade", "X"),
            cancel_event=event,
        )


def _cmd_downgrade(args: argparse.Namespace) -> int:
    """Revert migrations back to a target."""
    with _cancel_on_signal() as event:
        return _with_runner(
            args,
            lambda runner: _report(runner.downgrade(args.target), "downgrade", " "),
            cancel_event=event,
        )


def _cmd_current(args: argparse.Namespace) -> int:
    """Show the revision recorded in the database."""

    def body(runner: MigrationRunner) -> int:
        current = runner.current()
        if current is None:
            print("base (no migrations applied)")
            return EXIT_OK
        try:
            record = runner.resolver.get(current)
            heads = {h.revision for h in runner.heads()}
        except ChainError as exc:
            # marker not in this store, or the store does not resolve
            print(current)
            logger.warning("Cannot describe revision %s: %s", current, exc)
            return EXIT_OK
        suffix = " (head)" if current in heads else ""
        print(f"{record.label()}{suffix}")
        return EXIT_OK

    return _with_runner(args, body)


def _cmd_history(args: argparse.Namespace) -> int:
    """List the chain in execution order with applied marks."""

    def body(runner: MigrationRunner) -> int:
        entries = runner.history()
        if not entries:
            print("No migrations found.")
            return EXIT_OK
        for entry in entries:
            mark = "X" if entry.applied else " "
            tags = [t for t, on in (
                ("base", entry.record.is_base),
                ("current", entry.is_current),
                ("head", entry.is_head),
            ) if on]
            tag_str = f" ({', '.join(tags)})" if tags else ""
            print(f"  [{mark}] {entry.record.revision}{tag_str} {entry.record.description}".rstrip())
            if args.verbose and entry.record.path is not None:
                print(f"        {entry.record.path}")
        return EXIT_OK

    return _with_runner(args, body)


def _cmd_heads(args: argparse.Namespace) -> int:
    """Show the heads of the chain (more than one means it branched)."""
    store = load_migrations(_config(args).migrations_dir)
    heads = ChainResolver(store).heads()
    if not heads:
        print("No migrations found.")
        return EXIT_OK
    for head in heads:
        print(head.label())
    return EXIT_OK


def _cmd_stamp(args: argparse.Namespace) -> int:
    """Set the recorded revision without running migrations."""

    def body(runner: MigrationRunner) -> int:
        revision = runner.stamp(args.revision)
        print(f"WARNING: stamped {revision or 'base'} without running or verifying any migration.")
        return EXIT_OK

    return _with_runner(args, body)


def _cmd_revision(args: argparse.Namespace) -> int:
    """Generate a new, empty migration file after the current head."""
    config = _config(args)
    migrations_dir = config.migrations_dir
    store = load_migrations(migrations_dir)
    resolver = ChainResolver(store)
    down_revision = resolver.resolve(args.head or "head")
    if args.depends_on:
        for dep in args.depends_on:
            resolver.get(dep)

    revision = validate_revision_id(args.rev_id) if args.rev_id else new_revision_id()
    filename, content = generate_migration(
        revision,
        down_revision,
        args.message,
        depends_on=args.depends_on,
        created=datetime.now(timezone.utc).isoformat(timespec="seconds"),
    )
    migrations_dir.mkdir(parents=True, exist_ok=True)
    filepath = migrations_dir / filename
    filepath.write_text(content)
    print(f"Created migration: {filepath}")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="schemachain",
        description="Linear schema migration runner",
    )
    parser.add_argument("--url", default=None, help="Database URL (default: $SCHEMACHAIN_URL)")
    parser.add_argument(
        "--migrations-dir",
        default=None,
        help="Directory for migration files (default: $SCHEMACHAIN_MIGRATIONS_DIR or ./migrations)",
    )
    parser.add_argument(
        "--env", default=None,
        help="Execution environment passed to migrations (default: $SCHEMACHAIN_ENV or development)",
    )
    parser.add_argument(
        "--version-table", dest="version_table", default=None,
        help="Table holding the applied revision (default: schemachain_version)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    up = subparsers.add_parser("upgrade", help="Apply migrations up to a target")
    up.add_argument("target", nargs="?", default="head", help="Revision, prefix, head or +N (default: head)")
    up.set_defaults(func=_cmd_upgrade)

    down = subparsers.add_parser("downgrade", help="Revert migrations back to a target")
    down.add_argument("target", nargs="?", default=None, help="Revision, prefix, base or -N (default: one step)")
    down.set_defaults(func=_cmd_downgrade)

    cur = subparsers.add_parser("current", help="Show the applied revision")
    cur.set_defaults(func=_cmd_current)

    hist = subparsers.add_parser("history", help="List migrations in execution order")
    hist.set_defaults(func=_cmd_history)

    heads = subparsers.add_parser("heads", help="Show the heads of the chain")
    heads.set_defaults(func=_cmd_heads)

    stamp = subparsers.add_parser("stamp", help="Record a revision without running migrations")
    stamp.add_argument("revision", help="Revision, prefix, head or base")
    stamp.set_defaults(func=_cmd_stamp)

    rev = subparsers.add_parser("revision", help="Create a new migration file")
    rev.add_argument("-m", "--message", required=True, help="Description of the change")
    rev.add_argument("--head", default=None, help="Predecessor revision (default: the single head)")
    rev.add_argument("--depends-on", dest="depends_on", action="append", default=None,
                     help="Extra dependency revision (repeatable)")
    rev.add_argument("--rev-id", dest="rev_id", default=None, help="Use this revision identifier")
    rev.set_defaults(func=_cmd_revision)

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return EXIT_ERROR

    setup_logging(args.verbose)
    try:
        return args.func(args)
    except StepExecutionError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        if exc.__cause__ is not None:
            print(f"  Cause: {exc.__cause__!r}", file=sys.stderr)
        return EXIT_STEP_FAILED
    except MigrationCancelledError as exc:
        print(f"CANCELLED: {exc}", file=sys.stderr)
        return EXIT_CANCELLED
    except (SchemaChainError, sa.exc.SQLAlchemyError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
