"""002: create users and wallets tables

Revision ID: 002
Revises: 001
Create Date: 2026-10-12
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
            id              VARCHAR(64)     PRIMARY KEY,
            username        VARCHAR(64)     NOT NULL,
            is_active       BOOLEAN         NOT NULL DEFAULT TRUE,
            is_admin        BOOLEAN         NOT NULL DEFAULT FALSE,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_users_username    UNIQUE (username),
            CONSTRAINT ck_users_username_len CHECK (LENGTH(username) >= 3)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_users_updated_at
            BEFORE UPDATE ON users
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE users IS 'Users, mirrored from the account service';")

    # All amounts in paise. total_balance is computed, never stored.
    op.execute("""
        CREATE TABLE wallets (
            user_id             VARCHAR(64)     PRIMARY KEY REFERENCES users (id),
            deposit_balance     BIGINT          NOT NULL DEFAULT 0,
            winning_balance     BIGINT          NOT NULL DEFAULT 0,
            bonus_balance       BIGINT          NOT NULL DEFAULT 0,
            commission_balance  BIGINT          NOT NULL DEFAULT 0,
            total_bets          BIGINT          NOT NULL DEFAULT 0,
            total_winnings      BIGINT          NOT NULL DEFAULT 0,
            version             BIGINT          NOT NULL DEFAULT 0,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_wallets_deposit_gte_0     CHECK (deposit_balance >= 0),
            CONSTRAINT ck_wallets_winning_gte_0     CHECK (winning_balance >= 0),
            CONSTRAINT ck_wallets_bonus_gte_0       CHECK (bonus_balance >= 0),
            CONSTRAINT ck_wallets_commission_gte_0  CHECK (commission_balance >= 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_wallets_updated_at
            BEFORE UPDATE ON wallets
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS wallets CASCADE;")
    op.execute("DROP TABLE IF EXISTS users CASCADE;")
