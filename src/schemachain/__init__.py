"""schemachain - linear, graph-resolved schema migrations for relational databases."""

# Configuration and database access
from schemachain.config import MigrationConfig
from schemachain.database import create_engine

# Exceptions
from schemachain.exceptions import (
    AlreadyAtTarget,
    BrokenChainError,
    ChainError,
    ConfigurationError,
    CycleDetectedError,
    DuplicateIdentifierError,
    InvalidTargetError,
    IrreversibleMigrationError,
    MalformedRecordError,
    MigrationCancelledError,
    MigrationLoadError,
    MultipleHeadsError,
    SchemaChainError,
    StepExecutionError,
    UnknownRevisionError,
)

# Migrations
from schemachain.migrations import Migration
from schemachain.migrations.context import MigrationContext
from schemachain.migrations.executor import HistoryEntry, MigrationRunner, RunResult
from schemachain.migrations.loader import MigrationRecord, build_store, load_migrations
from schemachain.migrations.recorder import VersionTracker
from schemachain.migrations.resolver import ChainResolver

__version__ = "0.1.0"

__all__ = [
    # Config
    "MigrationConfig",
    "create_engine",
    # Migrations
    "Migration",
    "MigrationContext",
    "MigrationRecord",
    "MigrationRunner",
    "RunResult",
    "HistoryEntry",
    "ChainResolver",
    "VersionTracker",
    "build_store",
    "load_migrations",
    # Exceptions
    "SchemaChainError",
    "ConfigurationError",
    "MigrationLoadError",
    "DuplicateIdentifierError",
    "MalformedRecordError",
    "ChainError",
    "BrokenChainError",
    "MultipleHeadsError",
    "CycleDetectedError",
    "UnknownRevisionError",
    "InvalidTargetError",
    "StepExecutionError",
    "IrreversibleMigrationError",
    "MigrationCancelledError",
    "AlreadyAtTarget",
]
