"""Seed the fixed top-level roadmap phases.

Revision ID: 002
Revises: 001
Create Date: 2026-01-20

"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


PHASES = [
    # (name, order_index, color, icon)
    ('Preparation', 0, '#3b82f6', '📋'),
    ('Production', 1, '#f59e0b', '🎬'),
    ('Launch', 2, '#10b981', '🚀'),
    ('Final', 3, '#8b5cf6', '🏁'),
]


def upgrade() -> None:
    for name, order_index, color, icon in PHASES:
        op.execute(f"""
            INSERT INTO roadmap_phases (id, name, order_index, color, icon)
            VALUES (gen_random_uuid(), '{name}', {order_index}, '{color}', '{icon}')
            ON CONFLICT (order_index) DO NOTHING
        """)


def downgrade() -> None:
    op.execute("DELETE FROM roadmap_phases WHERE order_index IN (0, 1, 2, 3)")
