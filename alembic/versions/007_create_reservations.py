"""007: create reservations

sell_listing_id / buy_request_id carry no foreign key: reservations are
history and outlive their listing (active ones are cancelled on delete).

Revision ID: 007
Revises: 006
Create Date: 2026-10-05
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE reservations (
            id                      BIGSERIAL       PRIMARY KEY,
            sell_listing_id         BIGINT,
            buy_request_id          BIGINT,
            counterparty_user_id    BIGINT          NOT NULL REFERENCES users (id),
            quantity                INTEGER         NOT NULL,
            status                  VARCHAR(16)     NOT NULL DEFAULT 'pending',
            notes                   TEXT,
            expires_at              TIMESTAMPTZ,
            version                 BIGINT          NOT NULL DEFAULT 0,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_reservations_one_target
                CHECK ((sell_listing_id IS NULL) <> (buy_request_id IS NULL)),
            CONSTRAINT ck_reservations_quantity CHECK (quantity > 0),
            CONSTRAINT ck_reservations_status CHECK (status IN
                ('pending', 'confirmed', 'rejected', 'fulfilled', 'expired', 'cancelled'))
        );
    """)
    op.execute(
        "CREATE INDEX idx_reservations_sell_listing "
        "ON reservations (sell_listing_id, status) WHERE sell_listing_id IS NOT NULL;"
    )
    op.execute(
        "CREATE INDEX idx_reservations_buy_request "
        "ON reservations (buy_request_id, status) WHERE buy_request_id IS NOT NULL;"
    )
    op.execute(
        "CREATE INDEX idx_reservations_counterparty "
        "ON reservations (counterparty_user_id, created_at DESC);"
    )
    op.execute(
        "CREATE INDEX idx_reservations_expiry "
        "ON reservations (expires_at) WHERE status IN ('pending', 'confirmed');"
    )
    op.execute("""
        CREATE TRIGGER trg_reservations_updated_at
            BEFORE UPDATE ON reservations
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS reservations CASCADE;")
