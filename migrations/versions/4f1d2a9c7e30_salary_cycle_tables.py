"""profiles, attendance, holidays and salary cycle tables

Revision ID: 4f1d2a9c7e30
Revises:
Create Date: 2025-12-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4f1d2a9c7e30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'profiles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=True),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('role', sa.String(20), nullable=False, server_default='employee'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('join_date', sa.Date(), nullable=True),
        sa.Column('monthly_salary', sa.Numeric(12, 2), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_profiles_email', 'profiles', ['email'], unique=True)
    op.create_index('ix_profiles_payroll', 'profiles', ['role', 'is_active'], unique=False)

    op.create_table(
        'attendance',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(16), nullable=False),
        sa.Column('is_approved', sa.Boolean(), nullable=True),
        sa.Column('approved_by', sa.Integer(), sa.ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('employee_id', 'date', name='uq_attendance_employee_date'),
    )
    op.create_index('ix_attendance_employee_id', 'attendance', ['employee_id'], unique=False)
    op.create_index('ix_attendance_date', 'attendance', ['date'], unique=False)

    op.create_table(
        'holidays',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('date', sa.Date(), nullable=False, unique=True),
        sa.Column('name', sa.String(120), nullable=True),
        sa.Column('is_holiday', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'salary_cycles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('locked_by', sa.Integer(), sa.ForeignKey('profiles.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('locked_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('year', 'month', name='uq_salary_cycle_period'),
    )

    op.create_table(
        'salary_earnings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('cycle_id', sa.Integer(), sa.ForeignKey('salary_cycles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('profiles.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('monthly_salary', sa.Numeric(12, 2), nullable=False),
        sa.Column('total_eligible_working_days', sa.Integer(), nullable=False),
        sa.Column('per_day_salary', sa.Numeric(14, 6), nullable=False),
        sa.Column('gross_earned', sa.Numeric(14, 2), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('cycle_id', 'employee_id', name='uq_salary_earning_cycle_employee'),
    )
    op.create_index('ix_salary_earnings_cycle_id', 'salary_earnings', ['cycle_id'], unique=False)
    op.create_index('ix_salary_earnings_employee_id', 'salary_earnings', ['employee_id'], unique=False)

    op.create_table(
        'salary_payments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('cycle_id', sa.Integer(), sa.ForeignKey('salary_cycles.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('profiles.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('note', sa.String(255), nullable=True),
        sa.Column('paid_at', sa.DateTime(), nullable=False),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True),
    )
    op.create_index('ix_salary_payments_cycle_id', 'salary_payments', ['cycle_id'], unique=False)
    op.create_index('ix_salary_payments_employee_id', 'salary_payments', ['employee_id'], unique=False)


def downgrade() -> None:
    op.drop_table('salary_payments')
    op.drop_table('salary_earnings')
    op.drop_table('salary_cycles')
    op.drop_table('holidays')
    op.drop_table('attendance')
    op.drop_table('profiles')
