"""008: index market_results by cycle_date for the public result board

Revision ID: 008
Revises: 007
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op

revision: str = "008"
down_revision: Union[str, None] = "007"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE INDEX idx_market_results_cycle_date
        ON market_results (cycle_date DESC, declared_at DESC);
    """)


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS idx_market_results_cycle_date;")
