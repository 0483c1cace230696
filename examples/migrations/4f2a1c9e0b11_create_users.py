"""Create users

Revision: 4f2a1c9e0b11
Revises: <base>
"""

from schemachain.migrations import Migration
from schemachain.migrations import operations as ops


class M(Migration):
    revision = "4f2a1c9e0b11"
    down_revision = None
    depends_on = []
    description = "Create users"

    operations = [
        ops.CreateTable(
            name="users",
            columns=[
                ("id", "INTEGER PRIMARY KEY"),
                ("name", "TEXT NOT NULL"),
                ("email", "TEXT"),
                ("phone", "TEXT"),
            ],
        ),
    ]
