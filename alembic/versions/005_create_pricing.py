"""005: create price_lists, prices and price_adjustments

Revision ID: 005
Revises: 004
Create Date: 2026-10-05
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE price_lists (
            code                VARCHAR(32)     PRIMARY KEY,
            name                VARCHAR(128)    NOT NULL,
            currency            VARCHAR(3)      NOT NULL,
            default_location_id VARCHAR(32)     REFERENCES locations (id),
            is_active           BOOLEAN         NOT NULL DEFAULT TRUE,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_price_lists_currency CHECK (currency IN ('ICA', 'CIS', 'AIC', 'NCC'))
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_price_lists_updated_at
            BEFORE UPDATE ON price_lists
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("""
        CREATE TABLE prices (
            id                  BIGSERIAL       PRIMARY KEY,
            price_list_code     VARCHAR(32)     NOT NULL
                                REFERENCES price_lists (code) ON DELETE CASCADE,
            commodity_ticker    VARCHAR(10)     NOT NULL REFERENCES commodities (ticker),
            location_id         VARCHAR(32)     NOT NULL REFERENCES locations (id),
            price               NUMERIC(14, 2)  NOT NULL,
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_prices_list_ticker_location
                UNIQUE (price_list_code, commodity_ticker, location_id),
            CONSTRAINT ck_prices_price CHECK (price >= 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_prices_updated_at
            BEFORE UPDATE ON prices
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("""
        CREATE TABLE price_adjustments (
            id                  BIGSERIAL       PRIMARY KEY,
            price_list_code     VARCHAR(32)     REFERENCES price_lists (code) ON DELETE CASCADE,
            commodity_ticker    VARCHAR(10)     REFERENCES commodities (ticker),
            location_id         VARCHAR(32)     REFERENCES locations (id),
            currency            VARCHAR(3),
            adjustment_type     VARCHAR(16)     NOT NULL,
            adjustment_value    NUMERIC(14, 4)  NOT NULL,
            priority            INTEGER         NOT NULL DEFAULT 0,
            description         VARCHAR(500),
            is_active           BOOLEAN         NOT NULL DEFAULT TRUE,
            effective_from      TIMESTAMPTZ,
            effective_until     TIMESTAMPTZ,
            created_by_user_id  BIGINT          REFERENCES users (id) ON DELETE SET NULL,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_price_adjustments_type
                CHECK (adjustment_type IN ('percentage', 'fixed')),
            CONSTRAINT ck_price_adjustments_currency
                CHECK (currency IS NULL OR currency IN ('ICA', 'CIS', 'AIC', 'NCC')),
            CONSTRAINT ck_price_adjustments_window
                CHECK (effective_from IS NULL OR effective_until IS NULL
                       OR effective_until > effective_from)
        );
    """)
    op.execute(
        "CREATE INDEX idx_price_adjustments_scope "
        "ON price_adjustments (price_list_code, commodity_ticker) WHERE is_active;"
    )
    op.execute("""
        CREATE TRIGGER trg_price_adjustments_updated_at
            BEFORE UPDATE ON price_adjustments
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("COMMENT ON TABLE price_adjustments IS 'NULL scope column = applies to any value';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS price_adjustments CASCADE;")
    op.execute("DROP TABLE IF EXISTS prices CASCADE;")
    op.execute("DROP TABLE IF EXISTS price_lists CASCADE;")
