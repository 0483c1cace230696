"""Normalize phone numbers

Revision: c1d9a6e4b733
Revises: 8b7d3e2f5a20

Strips spaces and dashes, one page of rows at a time. The original
formatting is not kept, so the downgrade leaves the data as it is.
"""

from schemachain.migrations import Migration

BATCH_SIZE = 500


class M(Migration):
    revision = "c1d9a6e4b733"
    down_revision = "8b7d3e2f5a20"
    depends_on = []
    description = "Normalize phone numbers"

    def upgrade(self, ctx):
        ctx.batched_update(
            "accounts",
            "phone = REPLACE(REPLACE(TRIM(phone), ' ', ''), '-', '')",
            where="phone IS NOT NULL",
            batch_size=BATCH_SIZE,
        )

    def downgrade(self, ctx):
        pass
