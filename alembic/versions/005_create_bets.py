"""005: create bets table

Revision ID: 005
Revises: 004
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE bets (
            id                      VARCHAR(64)     PRIMARY KEY,
            user_id                 VARCHAR(64)     NOT NULL REFERENCES users (id),
            market_id               VARCHAR(64)     NOT NULL REFERENCES markets (id),
            bet_type                VARCHAR(20)     NOT NULL,
            bet_number              VARCHAR(16)     NOT NULL,
            bet_data                JSONB           NOT NULL DEFAULT '{}'::jsonb,
            stake                   BIGINT          NOT NULL,
            potential_payout        BIGINT          NOT NULL,
            status                  VARCHAR(20)     NOT NULL DEFAULT 'PENDING',
            is_winning              BOOLEAN,
            winning_amount          BIGINT          NOT NULL DEFAULT 0,
            judged_result           VARCHAR(2),
            result_processed_at     TIMESTAMPTZ,
            stake_transaction_id    BIGINT          REFERENCES transactions (id),
            win_transaction_id      BIGINT          REFERENCES transactions (id),
            cycle_date              DATE,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_bets_type CHECK (bet_type IN ('JODI', 'HARUF', 'CROSSING')),
            CONSTRAINT ck_bets_status CHECK (
                status IN ('PENDING', 'WON', 'LOST', 'CANCELLED', 'REFUNDED')
            ),
            CONSTRAINT ck_bets_stake_gt_0 CHECK (stake > 0),
            CONSTRAINT ck_bets_payout_gte_0 CHECK (potential_payout >= 0),
            CONSTRAINT ck_bets_winning_gte_0 CHECK (winning_amount >= 0)
        );
    """)
    op.execute("""
        CREATE INDEX idx_bets_pending
        ON bets (market_id, cycle_date, created_at)
        WHERE status = 'PENDING';
    """)
    op.execute("CREATE INDEX idx_bets_user_time ON bets (user_id, created_at DESC);")
    op.execute("""
        CREATE TRIGGER trg_bets_updated_at
            BEFORE UPDATE ON bets
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS bets CASCADE;")
