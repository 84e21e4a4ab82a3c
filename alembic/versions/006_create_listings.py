"""006: create sell_listings and buy_requests

Pricing is stored as (price, price_list_code): a price list means dynamic
pricing with price = 0, no price list means a fixed price > 0.

Revision ID: 006
Revises: 005
Create Date: 2026-10-05
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_PRICING_CHECK = """
    CHECK ((price_list_code IS NULL AND price > 0)
           OR (price_list_code IS NOT NULL AND price = 0))
"""


def upgrade() -> None:
    op.execute(f"""
        CREATE TABLE sell_listings (
            id                  BIGSERIAL       PRIMARY KEY,
            user_id             BIGINT          NOT NULL REFERENCES users (id) ON DELETE CASCADE,
            commodity_ticker    VARCHAR(10)     NOT NULL REFERENCES commodities (ticker),
            location_id         VARCHAR(32)     NOT NULL REFERENCES locations (id),
            currency            VARCHAR(3)      NOT NULL,
            order_type          VARCHAR(16)     NOT NULL DEFAULT 'internal',
            price               NUMERIC(14, 2)  NOT NULL DEFAULT 0,
            price_list_code     VARCHAR(32)     REFERENCES price_lists (code),
            limit_mode          VARCHAR(16)     NOT NULL DEFAULT 'none',
            limit_quantity      INTEGER,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_sell_listings_key
                UNIQUE (user_id, commodity_ticker, location_id, order_type, currency),
            CONSTRAINT ck_sell_listings_currency CHECK (currency IN ('ICA', 'CIS', 'AIC', 'NCC')),
            CONSTRAINT ck_sell_listings_order_type CHECK (order_type IN ('internal', 'partner')),
            CONSTRAINT ck_sell_listings_limit_mode
                CHECK (limit_mode IN ('none', 'max_sell', 'reserve')),
            CONSTRAINT ck_sell_listings_limit_quantity
                CHECK (limit_quantity IS NULL OR limit_quantity >= 0),
            CONSTRAINT ck_sell_listings_pricing {_PRICING_CHECK}
        );
    """)
    op.execute(
        "CREATE INDEX idx_sell_listings_market "
        "ON sell_listings (commodity_ticker, location_id, updated_at DESC);"
    )
    op.execute("""
        CREATE TRIGGER trg_sell_listings_updated_at
            BEFORE UPDATE ON sell_listings
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute(f"""
        CREATE TABLE buy_requests (
            id                  BIGSERIAL       PRIMARY KEY,
            user_id             BIGINT          NOT NULL REFERENCES users (id) ON DELETE CASCADE,
            commodity_ticker    VARCHAR(10)     NOT NULL REFERENCES commodities (ticker),
            location_id         VARCHAR(32)     NOT NULL REFERENCES locations (id),
            currency            VARCHAR(3)      NOT NULL,
            order_type          VARCHAR(16)     NOT NULL DEFAULT 'internal',
            price               NUMERIC(14, 2)  NOT NULL DEFAULT 0,
            price_list_code     VARCHAR(32)     REFERENCES price_lists (code),
            quantity            INTEGER         NOT NULL,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_buy_requests_key
                UNIQUE (user_id, commodity_ticker, location_id, order_type, currency),
            CONSTRAINT ck_buy_requests_currency CHECK (currency IN ('ICA', 'CIS', 'AIC', 'NCC')),
            CONSTRAINT ck_buy_requests_order_type CHECK (order_type IN ('internal', 'partner')),
            CONSTRAINT ck_buy_requests_quantity CHECK (quantity > 0),
            CONSTRAINT ck_buy_requests_pricing {_PRICING_CHECK}
        );
    """)
    op.execute(
        "CREATE INDEX idx_buy_requests_market "
        "ON buy_requests (commodity_ticker, location_id, updated_at DESC);"
    )
    op.execute("""
        CREATE TRIGGER trg_buy_requests_updated_at
            BEFORE UPDATE ON buy_requests
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS buy_requests CASCADE;")
    op.execute("DROP TABLE IF EXISTS sell_listings CASCADE;")
