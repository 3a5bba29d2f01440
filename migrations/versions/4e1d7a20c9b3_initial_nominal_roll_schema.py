"""initial nominal roll schema: users, staff, monthly approvals, pull history

Revision ID: 4e1d7a20c9b3
Revises:
Create Date: 2026-01-12 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4e1d7a20c9b3'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('staff_id', sa.String(length=32), nullable=False),
        sa.Column('emiscode', sa.Integer(), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_staff_id', 'users', ['staff_id'], unique=True)

    op.create_table(
        'staff_members',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('staff_id', sa.String(length=32), nullable=False, unique=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('school', sa.String(length=255), nullable=False),
        sa.Column('emiscode', sa.Integer(), nullable=False),
        sa.Column('unit', sa.String(length=120), nullable=True),
        sa.Column('rank', sa.String(length=120), nullable=True),
        sa.Column('stafftype', sa.String(length=40), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('status_desc', sa.Text(), nullable=True),
        sa.Column('authorised', sa.Boolean(), nullable=False),
        # legacy nullable flag; tightened in the next revision
        sa.Column('is_archived', sa.Boolean(), nullable=True),
        sa.Column('dob', sa.Date(), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('phone2', sa.String(length=20), nullable=True),
        sa.Column('resident_add', sa.String(length=255), nullable=True),
        sa.Column('residential_gps', sa.String(length=64), nullable=True),
        sa.Column('ssnit', sa.String(length=32), nullable=True),
        sa.Column('gh_card', sa.String(length=32), nullable=True),
        sa.Column('nhis', sa.String(length=32), nullable=True),
        sa.Column('ntc_num', sa.String(length=32), nullable=True),
        sa.Column('bank_name', sa.String(length=120), nullable=True),
        sa.Column('bank_branch', sa.String(length=120), nullable=True),
        sa.Column('account', sa.String(length=40), nullable=True),
        sa.Column('acad_qual', sa.String(length=120), nullable=True),
        sa.Column('date_obtained_acad', sa.Date(), nullable=True),
        sa.Column('prof_qual', sa.String(length=120), nullable=True),
        sa.Column('date_obtained_prof', sa.Date(), nullable=True),
        sa.Column('level', sa.String(length=40), nullable=True),
        sa.Column('subject', sa.String(length=120), nullable=True),
        sa.Column('date_first_app', sa.Date(), nullable=True),
        sa.Column('date_promoted', sa.Date(), nullable=True),
        sa.Column('date_posted_present_sta', sa.Date(), nullable=True),
        sa.Column('profile_image_url', sa.String(length=512), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_staff_emiscode', 'staff_members', ['emiscode'])
    op.create_index('ix_staff_emiscode_archived', 'staff_members', ['emiscode', 'is_archived'])
    op.create_index('ix_staff_name', 'staff_members', ['name'])

    op.create_table(
        'monthly_approvals',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('staff_member_id', sa.Integer(),
                  sa.ForeignKey('staff_members.id', ondelete='CASCADE'), nullable=False),
        sa.Column('month_start_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('emiscode', sa.Integer(), nullable=False),
        sa.Column('approved_by_user_id', sa.Integer(),
                  sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.UniqueConstraint('staff_member_id', 'month_start_date', name='uq_monthly_approval_staff_month'),
    )
    op.create_index('ix_monthly_approval_school_month', 'monthly_approvals', ['emiscode', 'month_start_date'])
    op.create_index('ix_monthly_approval_month', 'monthly_approvals', ['month_start_date'])

    op.create_table(
        'pull_history',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('actor_user_id', sa.Integer(),
                  sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('staff_member_id', sa.Integer(),
                  sa.ForeignKey('staff_members.id', ondelete='CASCADE'), nullable=False),
        sa.Column('prior_emiscode', sa.Integer(), nullable=False),
        sa.Column('prior_school', sa.String(length=255), nullable=False),
        sa.Column('prior_unit', sa.String(length=120), nullable=True),
        sa.Column('pulled_to_emiscode', sa.Integer(), nullable=False),
        sa.Column('pulled_to_school', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_pull_history_actor_user_id', 'pull_history', ['actor_user_id'])


def downgrade() -> None:
    op.drop_index('ix_pull_history_actor_user_id', table_name='pull_history')
    op.drop_table('pull_history')
    op.drop_index('ix_monthly_approval_month', table_name='monthly_approvals')
    op.drop_index('ix_monthly_approval_school_month', table_name='monthly_approvals')
    op.drop_table('monthly_approvals')
    op.drop_index('ix_staff_name', table_name='staff_members')
    op.drop_index('ix_staff_emiscode_archived', table_name='staff_members')
    op.drop_index('ix_staff_emiscode', table_name='staff_members')
    op.drop_table('staff_members')
    op.drop_index('ix_users_staff_id', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
