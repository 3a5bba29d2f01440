"""staff_members.is_archived: backfill NULL as false and make it NOT NULL

Revision ID: 9b0f3c5e71d2
Revises: 4e1d7a20c9b3
Create Date: 2026-02-03 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '9b0f3c5e71d2'
down_revision: Union[str, Sequence[str], None] = '4e1d7a20c9b3'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # a NULL flag always meant "active"
    op.execute(sa.text("UPDATE staff_members SET is_archived = false WHERE is_archived IS NULL"))
    with op.batch_alter_table('staff_members') as batch:
        batch.alter_column(
            'is_archived',
            existing_type=sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        )


def downgrade() -> None:
    with op.batch_alter_table('staff_members') as batch:
        batch.alter_column(
            'is_archived',
            existing_type=sa.Boolean(),
            nullable=True,
            server_default=None,
        )
