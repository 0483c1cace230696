"""Runtime configuration, read from environment variables and CLI flags."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping

from schemachain.exceptions import ConfigurationError

DEFAULT_MIGRATIONS_DIR = "migrations"
DEFAULT_ENVIRONMENT = "development"
DEFAULT_VERSION_TABLE = "schemachain_version"

ENV_URL = "SCHEMACHAIN_URL"
ENV_MIGRATIONS_DIR = "SCHEMACHAIN_MIGRATIONS_DIR"
ENV_ENVIRONMENT = "SCHEMACHAIN_ENV"
ENV_VERSION_TABLE = "SCHEMACHAIN_VERSION_TABLE"

_TABLE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")


def validate_table_name(name: str) -> str:
    """Reject table names that would need quoting to be used in SQL."""
    if not _TABLE_NAME_RE.match(name):
        raise ConfigurationError(f"Invalid version table name: {name!r}")
    return name


@dataclass(frozen=True)
class MigrationConfig:
    """Settings shared by every command."""

    url: str | None = None
    migrations_dir: Path = Path(DEFAULT_MIGRATIONS_DIR)
    environment: str = DEFAULT_ENVIRONMENT
    version_table: str = DEFAULT_VERSION_TABLE

    def __post_init__(self) -> None:
        validate_table_name(self.version_table)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> MigrationConfig:
        """Build a config from ``SCHEMACHAIN_*`` environment variables."""
        env = os.environ if environ is None else environ
        return cls(
            url=env.get(ENV_URL) or None,
            migrations_dir=Path(env.get(ENV_MIGRATIONS_DIR) or DEFAULT_MIGRATIONS_DIR),
            environment=env.get(ENV_ENVIRONMENT) or DEFAULT_ENVIRONMENT,
            version_table=env.get(ENV_VERSION_TABLE) or DEFAULT_VERSION_TABLE,
        )

    def override(self, **values: Any) -> MigrationConfig:
        """Return a copy with every non-None value applied (CLI flags win)."""
        changes = {k: v for k, v in values.items() if v is not None}
        if "migrations_dir" in changes:
            changes["migrations_dir"] = Path(changes["migrations_dir"])
        return replace(self, **changes)

    def require_url(self) -> str:
        if not self.url:
            raise ConfigurationError(
                f"No database URL configured (use --url or set {ENV_URL})"
            )
        return self.url
