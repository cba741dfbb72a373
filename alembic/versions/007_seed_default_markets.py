"""007: seed default markets

Revision ID: 007
Revises: 006
Create Date: 2026-10-12
"""

from typing import Sequence, Union

from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_MARKET_IDS = (
    "MKT-DELHI-BAZAR", "MKT-GOA-MARKET", "MKT-SHRI-GANESH", "MKT-FARIDABAD",
    "MKT-GHAZIABAD", "MKT-GALI", "MKT-DISAWER",
)


def upgrade() -> None:
    # Instants for today's IST cycle; an end or result earlier than the start
    # falls on the following day.
    op.execute("""
        INSERT INTO markets (
            id, name, start_time, end_time, result_time, timezone,
            cycle_date, start_at_utc, end_at_utc, result_at_utc,
            current_status, last_status_change, created_by
        )
        SELECT
            s.id, s.name, s.start_time, s.end_time, s.result_time, 'Asia/Kolkata',
            d.cycle_date,
            (d.cycle_date + s.start_time::time) AT TIME ZONE 'Asia/Kolkata',
            (d.cycle_date + s.end_time::time
                + CASE WHEN s.end_time < s.start_time THEN INTERVAL '1 day' ELSE INTERVAL '0' END
            ) AT TIME ZONE 'Asia/Kolkata',
            (d.cycle_date + s.result_time::time
                + CASE WHEN s.result_time < s.start_time THEN INTERVAL '1 day' ELSE INTERVAL '0' END
            ) AT TIME ZONE 'Asia/Kolkata',
            'WAITING', NOW(), 'system:seed'
        FROM (VALUES
            ('MKT-DELHI-BAZAR', 'Delhi Bazar',  '08:00', '14:40', '15:15'),
            ('MKT-GOA-MARKET',  'Goa Market',   '08:00', '16:10', '16:30'),
            ('MKT-SHRI-GANESH', 'Shri Ganesh',  '08:00', '16:15', '16:50'),
            ('MKT-FARIDABAD',   'Faridabad',    '08:00', '17:45', '18:30'),
            ('MKT-GHAZIABAD',   'Ghaziabad',    '08:00', '20:45', '21:30'),
            ('MKT-GALI',        'Gali',         '08:00', '23:10', '00:30'),
            ('MKT-DISAWER',     'Disawer',      '08:00', '03:30', '06:00')
        ) AS s (id, name, start_time, end_time, result_time)
        CROSS JOIN (SELECT (NOW() AT TIME ZONE 'Asia/Kolkata')::date AS cycle_date) AS d;
    """)


def downgrade() -> None:
    ids = ", ".join(f"'{market_id}'" for market_id in _MARKET_IDS)
    op.execute(f"DELETE FROM markets WHERE id IN ({ids});")
