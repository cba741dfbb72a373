"""006: create market_results table

Revision ID: 006
Revises: 005
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE market_results (
            id                  VARCHAR(64)     PRIMARY KEY,
            market_id           VARCHAR(64)     NOT NULL REFERENCES markets (id) ON DELETE CASCADE,
            cycle_date          DATE,
            declared_result     VARCHAR(2)      NOT NULL,
            result_jodi         VARCHAR(2),
            result_haruf        VARCHAR(2),
            result_crossing     VARCHAR(2),
            method              VARCHAR(20)     NOT NULL,
            declared_by         VARCHAR(64)     NOT NULL,
            declared_at         TIMESTAMPTZ     NOT NULL,
            total_bets          INT             NOT NULL DEFAULT 0,
            total_staked        BIGINT          NOT NULL DEFAULT 0,
            total_paid          BIGINT          NOT NULL DEFAULT 0,
            net_margin          BIGINT          NOT NULL DEFAULT 0,
            winning_bets        INT             NOT NULL DEFAULT 0,
            losing_bets         INT             NOT NULL DEFAULT 0,
            unsettled_bets      INT             NOT NULL DEFAULT 0,
            breakdown           JSONB           NOT NULL DEFAULT '{}'::jsonb,
            processed_at        TIMESTAMPTZ,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_market_results_cycle UNIQUE (market_id, cycle_date),
            CONSTRAINT ck_market_results_method CHECK (method IN ('MANUAL', 'AUTOMATIC'))
        );
    """)
    op.execute("""
        CREATE INDEX idx_market_results_unprocessed
        ON market_results (market_id, declared_at DESC)
        WHERE processed_at IS NULL;
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS market_results CASCADE;")
