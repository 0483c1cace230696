"""schemachain migration system - linear, graph-resolved schema versioning."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from schemachain.migrations.operations import (
    AddColumn,
    CreateIndex,
    CreateTable,
    DropColumn,
    DropIndex,
    DropTable,
    Operation,
    RenameColumn,
    RenameTable,
    RunPython,
    RunSQL,
)

if TYPE_CHECKING:
    from schemachain.migrations.context import MigrationContext


class Migration:
    """Base class for migration files.

    Subclass as ``M`` in each migration file::

        class M(Migration):
            revision = "1975ea83b712"
            down_revision = "ae1027a6acf2"
            description = "rename users to accounts"
            operations = [ops.RenameTable("users", "accounts")]

    Override ``upgrade``/``downgrade`` for steps that need more than the
    declarative operations (data normalization, conditional changes).
    """

    revision: ClassVar[str | None] = None
    down_revision: ClassVar[str | None] = None
    depends_on: ClassVar[list[str]] = []
    description: ClassVar[str] = ""
    operations: ClassVar[list[Operation]] = []

    def upgrade(self, ctx: MigrationContext) -> None:
        for op in self.operations:
            op.forward(ctx)

    def downgrade(self, ctx: MigrationContext) -> None:
        for op in reversed(self.operations):
            op.backward(ctx)

    @classmethod
    def has_forward_action(cls) -> bool:
        return bool(cls.operations) or cls.upgrade is not Migration.upgrade

    @classmethod
    def has_reverse_action(cls) -> bool:
        return bool(cls.operations) or cls.downgrade is not Migration.downgrade


__all__ = [
    "Migration",
    "CreateTable",
    "DropTable",
    "RenameTable",
    "AddColumn",
    "DropColumn",
    "RenameColumn",
    "CreateIndex",
    "DropIndex",
    "RunSQL",
    "RunPython",
    "Operation",
]
