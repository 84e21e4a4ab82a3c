"""008: seed roles, permissions and reference data

Revision ID: 008
Revises: 007
Create Date: 2026-10-05
"""

from typing import Sequence, Union

from alembic import op

revision: str = "008"
down_revision: Union[str, None] = "007"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        INSERT INTO permissions (id, description) VALUES
            ('orders.post_internal', 'Create and edit internal listings'),
            ('orders.post_partner', 'Create and edit partner listings'),
            ('reservations.place_internal', 'Reserve against internal listings'),
            ('reservations.place_partner', 'Reserve against partner listings'),
            ('prices.manage', 'Manage price adjustments');
    """)
    op.execute("""
        INSERT INTO roles (id, name) VALUES
            ('member', 'Member'),
            ('trade-partner', 'Trade partner'),
            ('admin', 'Administrator');
    """)
    op.execute("""
        INSERT INTO role_permissions (role_id, permission_id, allowed) VALUES
            ('member', 'orders.post_internal', TRUE),
            ('member', 'orders.post_partner', TRUE),
            ('member', 'reservations.place_internal', TRUE),
            ('member', 'reservations.place_partner', TRUE),
            ('trade-partner', 'orders.post_partner', TRUE),
            ('trade-partner', 'reservations.place_partner', TRUE),
            ('trade-partner', 'reservations.place_internal', FALSE),
            ('admin', 'prices.manage', TRUE);
    """)

    # Sample reference data
    op.execute("""
        INSERT INTO commodities (ticker, name, category) VALUES
            ('H2O', 'Water', 'consumables'),
            ('RAT', 'Basic Rations', 'consumables'),
            ('DW', 'Drinking Water', 'consumables'),
            ('FE', 'Iron', 'metals');
    """)
    op.execute("""
        INSERT INTO locations (id, name, type) VALUES
            ('BEN', 'Benten Station', 'station'),
            ('MOR', 'Moria Station', 'station'),
            ('UV-351a', 'Katoa', 'planet');
    """)


def downgrade() -> None:
    op.execute("DELETE FROM locations WHERE id IN ('BEN', 'MOR', 'UV-351a');")
    op.execute("DELETE FROM commodities WHERE ticker IN ('H2O', 'RAT', 'DW', 'FE');")
    op.execute("DELETE FROM role_permissions WHERE role_id IN ('member', 'trade-partner', 'admin');")
    op.execute("DELETE FROM roles WHERE id IN ('member', 'trade-partner', 'admin');")
    op.execute("DELETE FROM permissions;")
