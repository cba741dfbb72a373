"""003: create transactions table

Revision ID: 003
Revises: 002
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE transactions (
            id              BIGSERIAL       PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL REFERENCES users (id),
            entry_type      VARCHAR(30)     NOT NULL,
            amount          BIGINT          NOT NULL,
            status          VARCHAR(20)     NOT NULL DEFAULT 'COMPLETED',
            balance_after   BIGINT          NOT NULL,
            reference_type  VARCHAR(30),
            reference_id    VARCHAR(64),
            market_id       VARCHAR(64),
            description     VARCHAR(500),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_transactions_entry_type CHECK (
                entry_type IN (
                    'DEPOSIT', 'WITHDRAW', 'BET_STAKE', 'WIN_CREDIT',
                    'BONUS', 'COMMISSION', 'ADJUSTMENT'
                )
            ),
            CONSTRAINT ck_transactions_status CHECK (
                status IN ('PENDING', 'COMPLETED', 'FAILED', 'CANCELLED')
            ),
            CONSTRAINT ck_transactions_balance_gte_0 CHECK (balance_after >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_transactions_user_id ON transactions (user_id, id DESC);")
    op.execute("""
        CREATE INDEX idx_transactions_reference
        ON transactions (reference_type, reference_id)
        WHERE reference_id IS NOT NULL;
    """)
    op.execute("CREATE INDEX idx_transactions_market ON transactions (market_id, entry_type);")
    op.execute("COMMENT ON TABLE transactions IS 'Wallet ledger, append-only, amounts in paise';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS transactions CASCADE;")
