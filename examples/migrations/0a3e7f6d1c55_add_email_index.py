"""Add email index

Revision: 0a3e7f6d1c55
Revises: e5f0b2c8d944

Sorts first by filename but runs last: order comes from down_revision.
"""

from schemachain.migrations import Migration
from schemachain.migrations import operations as ops


class M(Migration):
    revision = "0a3e7f6d1c55"
    down_revision = "e5f0b2c8d944"
    depends_on = ["8b7d3e2f5a20"]
    description = "Add email index"

    operations = [
        ops.CreateIndex(
            name="ix_accounts_email",
            table="accounts",
            columns=["email"],
            skip_environments=("development",),
        ),
    ]
