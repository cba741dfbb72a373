"""004: create markets table

Revision ID: 004
Revises: 003
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE markets (
            id                      VARCHAR(64)     PRIMARY KEY,
            name                    VARCHAR(64)     NOT NULL,
            market_type             VARCHAR(20)     NOT NULL DEFAULT 'JODI',
            is_active               BOOLEAN         NOT NULL DEFAULT TRUE,

            -- Wall-clock schedule, local to `timezone`
            start_time              VARCHAR(5)      NOT NULL,
            end_time                VARCHAR(5)      NOT NULL,
            result_time             VARCHAR(5)      NOT NULL,
            timezone                VARCHAR(64)     NOT NULL DEFAULT 'Asia/Kolkata',

            -- Absolute instants of the current cycle
            start_at_utc            TIMESTAMPTZ,
            end_at_utc              TIMESTAMPTZ,
            result_at_utc           TIMESTAMPTZ,
            cycle_date              DATE,

            current_status          VARCHAR(20)     NOT NULL DEFAULT 'WAITING',
            forced_status           VARCHAR(20),
            accepting_bets          BOOLEAN         NOT NULL DEFAULT TRUE,
            auto_closed_at          TIMESTAMPTZ,
            manually_closed_at      TIMESTAMPTZ,
            manually_closed_by      VARCHAR(64),
            last_status_change      TIMESTAMPTZ,

            -- Limits in paise, multipliers are whole numbers
            min_bet                 BIGINT          NOT NULL DEFAULT 1000,
            max_bet                 BIGINT          NOT NULL DEFAULT 1000000,
            jodi_multiplier         INT             NOT NULL DEFAULT 95,
            haruf_multiplier        INT             NOT NULL DEFAULT 9,
            crossing_multiplier     INT             NOT NULL DEFAULT 95,
            crossing_rule           VARCHAR(30)     NOT NULL DEFAULT 'REVERSIBLE',

            declared_result         VARCHAR(2),
            result_jodi             VARCHAR(2),
            result_haruf            VARCHAR(2),
            result_crossing         VARCHAR(2),
            result_declared_at      TIMESTAMPTZ,
            result_declared_by      VARCHAR(64),
            result_method           VARCHAR(20),

            created_by              VARCHAR(64),
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),

            CONSTRAINT uq_markets_name UNIQUE (name),
            CONSTRAINT ck_markets_status CHECK (
                current_status IN ('WAITING', 'OPEN', 'CLOSED', 'RESULT_DECLARED')
            ),
            CONSTRAINT ck_markets_forced_status CHECK (
                forced_status IS NULL
                OR forced_status IN ('WAITING', 'OPEN', 'CLOSED', 'RESULT_DECLARED')
            ),
            CONSTRAINT ck_markets_times CHECK (
                start_time ~ '^([01][0-9]|2[0-3]):[0-5][0-9]$'
                AND end_time ~ '^([01][0-9]|2[0-3]):[0-5][0-9]$'
                AND result_time ~ '^([01][0-9]|2[0-3]):[0-5][0-9]$'
            ),
            CONSTRAINT ck_markets_bet_limits CHECK (min_bet > 0 AND min_bet <= max_bet),
            CONSTRAINT ck_markets_multipliers CHECK (
                jodi_multiplier > 0 AND haruf_multiplier > 0 AND crossing_multiplier > 0
            ),
            CONSTRAINT ck_markets_crossing_rule CHECK (
                crossing_rule IN ('REVERSIBLE', 'EXACT', 'REVERSIBLE_IF_DECLARED')
            ),
            CONSTRAINT ck_markets_declared_result CHECK (
                declared_result IS NULL OR declared_result ~ '^[0-9]{2}$'
            ),
            CONSTRAINT ck_markets_result_method CHECK (
                result_method IS NULL OR result_method IN ('MANUAL', 'AUTOMATIC')
            )
        );
    """)
    op.execute("CREATE INDEX idx_markets_sweep ON markets (end_at_utc) WHERE is_active;")
    op.execute("CREATE INDEX idx_markets_status ON markets (current_status);")
    op.execute("""
        CREATE TRIGGER trg_markets_updated_at
            BEFORE UPDATE ON markets
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS markets CASCADE;")
