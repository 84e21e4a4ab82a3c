"""004: create inventory_storages and inventory_items

Written by the external inventory sync job; read-only for this service.

Revision ID: 004
Revises: 003
Create Date: 2026-10-05
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE inventory_storages (
            id              BIGSERIAL       PRIMARY KEY,
            user_id         BIGINT          NOT NULL REFERENCES users (id) ON DELETE CASCADE,
            storage_id      VARCHAR(64)     NOT NULL,
            location_id     VARCHAR(32)     REFERENCES locations (id),
            type            VARCHAR(32)     NOT NULL,
            last_synced_at  TIMESTAMPTZ     NOT NULL,
            fio_uploaded_at TIMESTAMPTZ,
            CONSTRAINT uq_inventory_storages_user_storage UNIQUE (user_id, storage_id)
        );
    """)
    op.execute(
        "CREATE INDEX idx_inventory_storages_user_location "
        "ON inventory_storages (user_id, location_id);"
    )
    op.execute("""
        CREATE TABLE inventory_items (
            id                  BIGSERIAL       PRIMARY KEY,
            storage_pk          BIGINT          NOT NULL
                                REFERENCES inventory_storages (id) ON DELETE CASCADE,
            commodity_ticker    VARCHAR(10)     NOT NULL REFERENCES commodities (ticker),
            quantity            INTEGER         NOT NULL,
            CONSTRAINT uq_inventory_items_storage_ticker UNIQUE (storage_pk, commodity_ticker),
            CONSTRAINT ck_inventory_items_quantity CHECK (quantity >= 0)
        );
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS inventory_items CASCADE;")
    op.execute("DROP TABLE IF EXISTS inventory_storages CASCADE;")
