"""Exception hierarchy for schemachain."""

from __future__ import annotations


class SchemaChainError(Exception):
    """Base exception for all schemachain errors."""


class ConfigurationError(SchemaChainError):
    """Missing or invalid configuration (database URL, table name)."""


# ── Loading ──────────────────────────────────────────────────────────


class MigrationLoadError(SchemaChainError):
    """A migration definition could not be loaded."""


class DuplicateIdentifierError(MigrationLoadError):
    """Two definitions declare the same revision identifier."""

    def __init__(self, revision: str, *, sources: list[str] | None = None) -> None:
        self.revision = revision
        self.sources = sources or []
        detail = f" ({', '.join(self.sources)})" if self.sources else ""
        super().__init__(f"Duplicate revision identifier {revision!r}{detail}")


class MalformedRecordError(MigrationLoadError):
    """A definition is missing a required field or declares it wrongly."""

    def __init__(self, message: str, *, source: str | None = None) -> None:
        self.source = source
        super().__init__(f"{source}: {message}" if source else message)


# ── Resolution ───────────────────────────────────────────────────────


class ChainError(SchemaChainError):
    """The dependency graph cannot produce the requested order."""


class BrokenChainError(ChainError):
    """A predecessor or extra dependency names a revision that does not exist."""

    def __init__(self, revision: str, missing: str) -> None:
        self.revision = revision
        self.missing = missing
        super().__init__(
            f"Revision {revision!r} depends on {missing!r}, which is not present"
        )


class MultipleHeadsError(ChainError):
    """The chain branches, or has several roots, and no target disambiguates it."""

    def __init__(self, message: str, *, revisions: list[str] | None = None) -> None:
        super().__init__(message)
        self.revisions = revisions or []


class CycleDetectedError(ChainError):
    """A dependency edge closes a loop."""

    def __init__(self, revisions: list[str]) -> None:
        self.revisions = revisions
        super().__init__(
            "Dependency cycle detected among revisions: " + ", ".join(revisions)
        )


class UnknownRevisionError(ChainError):
    """A requested revision is not in the store, or a prefix is ambiguous."""


class InvalidTargetError(ChainError):
    """The target lies in the wrong direction for the requested command."""


# ── Execution ────────────────────────────────────────────────────────


class StepExecutionError(SchemaChainError):
    """A migration step failed; only that step was rolled back."""

    def __init__(
        self,
        revision: str,
        direction: str,
        cause: BaseException,
        *,
        marker: str | None = None,
    ) -> None:
        self.revision = revision
        self.direction = direction
        self.cause = cause
        self.marker = marker
        super().__init__(
            f"{direction} of revision {revision!r} failed: "
            f"{type(cause).__name__}: {cause} (current revision: {marker or 'base'})"
        )


class IrreversibleMigrationError(SchemaChainError):
    """An operation has no reverse action."""


class MigrationCancelledError(SchemaChainError):
    """The run was cancelled between two steps."""

    def __init__(self, completed: list[str], *, marker: str | None = None) -> None:
        self.completed = completed
        self.marker = marker
        super().__init__(
            f"Cancelled after {len(completed)} step(s) "
            f"(current revision: {marker or 'base'})"
        )


class AlreadyAtTarget(Exception):
    """No-op signal: the database is already at the requested revision.

    Not a :class:`SchemaChainError`; the runner turns it into a result.
    """

    def __init__(self, revision: str | None) -> None:
        self.revision = revision
        super().__init__(f"Already at {revision or 'base'}")
