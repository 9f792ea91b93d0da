"""user_attendance and external_employees

Revision ID: 3f1a9c2e7b40
Revises:
Create Date: 2025-10-06 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1a9c2e7b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'user_attendance',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('state', sa.String(length=32), nullable=False),
        sa.Column('punch_time', sa.DateTime(), nullable=False),
        sa.Column('verify_mode', sa.String(length=64), nullable=True),
        sa.Column('source', sa.String(length=32), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.UniqueConstraint('user_id', 'state', 'punch_time', name='uq_user_attendance_user_state_time'),
    )
    op.create_index('ix_user_attendance_user_id', 'user_attendance', ['user_id'], unique=False)
    op.create_index('ix_user_attendance_punch_time', 'user_attendance', ['punch_time'], unique=False)
    op.create_index('ix_user_attendance_user_time', 'user_attendance', ['user_id', 'punch_time'], unique=False)

    op.create_table(
        'external_employees',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('pin_auto', sa.String(length=64), nullable=False),
        sa.Column('pin_manual', sa.String(length=64), nullable=True),
        sa.Column('user_name', sa.String(length=255), nullable=True),
        sa.Column('privilege', sa.String(length=32), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.UniqueConstraint('pin_auto'),
    )


def downgrade() -> None:
    op.drop_table('external_employees')
    for ix in ('ix_user_attendance_user_time', 'ix_user_attendance_punch_time', 'ix_user_attendance_user_id'):
        try:
            op.drop_index(ix, table_name='user_attendance')
        except Exception:
            pass
    op.drop_table('user_attendance')
