"""Add status (NOT NULL)

Revision: e5f0b2c8d944
Revises: c1d9a6e4b733
"""

from schemachain.migrations import Migration
from schemachain.migrations import operations as ops


class M(Migration):
    revision = "e5f0b2c8d944"
    down_revision = "c1d9a6e4b733"
    depends_on = []
    description = "Add status (NOT NULL)"

    operations = [
        # Existing rows get the default, so the constraint holds immediately
        ops.AddColumn(
            table="accounts",
            column="status",
            type="TEXT",
            nullable=False,
            server_default="'active'",
        ),
    ]
