"""Rename users to accounts

Revision: 8b7d3e2f5a20
Revises: 4f2a1c9e0b11
"""

from schemachain.migrations import Migration
from schemachain.migrations import operations as ops


class M(Migration):
    revision = "8b7d3e2f5a20"
    down_revision = "4f2a1c9e0b11"
    depends_on = []
    description = "Rename users to accounts"

    operations = [
        ops.RenameTable(old_name="users", new_name="accounts"),
    ]
