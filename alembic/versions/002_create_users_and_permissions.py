"""002: create users, roles and role_permissions

Users are provisioned by the external auth service; this side only needs
their ids and the role → permission matrix.

Revision ID: 002
Revises: 001
Create Date: 2026-10-05
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE users (
            id              BIGSERIAL       PRIMARY KEY,
            username        VARCHAR(64)     NOT NULL,
            display_name    VARCHAR(128),
            is_active       BOOLEAN         NOT NULL DEFAULT TRUE,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_users_username UNIQUE (username)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_users_updated_at
            BEFORE UPDATE ON users
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("""
        CREATE TABLE roles (
            id              VARCHAR(64)     PRIMARY KEY,
            name            VARCHAR(128)    NOT NULL
        );
    """)
    op.execute("""
        CREATE TABLE permissions (
            id              VARCHAR(64)     PRIMARY KEY,
            description     VARCHAR(255)
        );
    """)
    op.execute("""
        CREATE TABLE role_permissions (
            role_id         VARCHAR(64)     NOT NULL REFERENCES roles (id) ON DELETE CASCADE,
            permission_id   VARCHAR(64)     NOT NULL REFERENCES permissions (id) ON DELETE CASCADE,
            allowed         BOOLEAN         NOT NULL DEFAULT TRUE,
            PRIMARY KEY (role_id, permission_id)
        );
    """)
    op.execute("COMMENT ON COLUMN role_permissions.allowed IS 'false = explicit deny, wins over any grant';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS role_permissions CASCADE;")
    op.execute("DROP TABLE IF EXISTS permissions CASCADE;")
    op.execute("DROP TABLE IF EXISTS roles CASCADE;")
    op.execute("DROP TABLE IF EXISTS users CASCADE;")
