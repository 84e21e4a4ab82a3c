"""003: create commodities and locations

Revision ID: 003
Revises: 002
Create Date: 2026-10-05
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE commodities (
            ticker          VARCHAR(10)     PRIMARY KEY,
            name            VARCHAR(128)    NOT NULL,
            category        VARCHAR(64)
        );
    """)
    op.execute("""
        CREATE TABLE locations (
            id              VARCHAR(32)     PRIMARY KEY,
            name            VARCHAR(128)    NOT NULL,
            type            VARCHAR(16)     NOT NULL DEFAULT 'planet',
            CONSTRAINT ck_locations_type CHECK (type IN ('planet', 'station'))
        );
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS locations CASCADE;")
    op.execute("DROP TABLE IF EXISTS commodities CASCADE;")
