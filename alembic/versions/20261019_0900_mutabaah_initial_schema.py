"""Mutabaah initial schema

Revision ID: 20261019_0900
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '20261019_0900'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Directory
    op.create_table(
        'hospitals',
        sa.Column('id', sa.String(50), primary_key=True),
        sa.Column('brand', sa.String(50), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_hospitals_brand', 'hospitals', ['brand'])

    op.create_table(
        'employees',
        sa.Column('id', sa.String(50), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('hospital_id', sa.String(50), nullable=True),
        sa.Column('unit', sa.String(255), nullable=True),
        sa.Column('profession', sa.String(255), nullable=True),
        sa.Column('profession_category', sa.String(100), nullable=True),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.text('true')),
        sa.Column('role', sa.String(11), nullable=False, server_default='user'),
        sa.Column('can_be_mentor', sa.Boolean, nullable=False, server_default=sa.text('false')),
        sa.Column('can_be_supervisor', sa.Boolean, nullable=False, server_default=sa.text('false')),
        sa.Column('can_be_ka_unit', sa.Boolean, nullable=False, server_default=sa.text('false')),
        sa.Column('can_be_manager', sa.Boolean, nullable=False, server_default=sa.text('false')),
        sa.Column('can_be_dirut', sa.Boolean, nullable=False, server_default=sa.text('false')),
        sa.Column('mentor_id', sa.String(50), nullable=True),
        sa.Column('supervisor_id', sa.String(50), nullable=True),
        sa.Column('ka_unit_id', sa.String(50), nullable=True),
        sa.Column('manager_id', sa.String(50), nullable=True),
        sa.Column('dirut_id', sa.String(50), nullable=True),
        *_timestamps(),
    )
    for column in ('name', 'hospital_id', 'unit', 'mentor_id', 'supervisor_id', 'ka_unit_id', 'manager_id'):
        op.create_index(f'ix_employees_{column}', 'employees', [column])

    # Activity sources
    op.create_table(
        'attendance_records',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('employee_id', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.String(100), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='hadir'),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('reason', sa.Text, nullable=True),
        sa.Column('is_late_entry', sa.Boolean, nullable=False, server_default=sa.text('false')),
        *_timestamps(),
        sa.UniqueConstraint('employee_id', 'entity_id', name='uq_attendance_records_employee_entity'),
    )
    op.create_index('ix_attendance_records_employee_id', 'attendance_records', ['employee_id'])
    op.create_index('ix_attendance_records_timestamp', 'attendance_records', ['timestamp'])

    op.create_table(
        'team_attendance_records',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('employee_id', sa.String(50), nullable=False),
        sa.Column('session_id', sa.String(100), nullable=True),
        sa.Column('session_type', sa.String(100), nullable=False),
        sa.Column('session_date', sa.Date, nullable=False),
        sa.Column('attended_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_team_attendance_records_employee_id', 'team_attendance_records', ['employee_id'])
    op.create_index('ix_team_attendance_records_session_date', 'team_attendance_records', ['session_date'])

    op.create_table(
        'activities',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('activity_type', sa.String(100), nullable=False),
        sa.Column('date', sa.Date, nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_activities_date', 'activities', ['date'])

    op.create_table(
        'activity_attendance',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('activity_id', sa.Uuid, sa.ForeignKey('activities.id', ondelete='CASCADE'), nullable=False),
        sa.Column('employee_id', sa.String(50), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='hadir'),
        *_timestamps(),
    )
    op.create_index('ix_activity_attendance_activity_id', 'activity_attendance', ['activity_id'])
    op.create_index('ix_activity_attendance_employee_id', 'activity_attendance', ['employee_id'])

    op.create_table(
        'employee_monthly_reports',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('employee_id', sa.String(50), nullable=False, unique=True),
        sa.Column('reports', sa.JSON, nullable=False),
        *_timestamps(),
    )

    # Activation and submissions
    op.create_table(
        'mutabaah_activations',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('employee_id', sa.String(50), nullable=False),
        sa.Column('month_key', sa.String(7), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('employee_id', 'month_key', name='uq_mutabaah_activations_employee_month'),
    )
    op.create_index('ix_mutabaah_activations_employee_id', 'mutabaah_activations', ['employee_id'])

    op.create_table(
        'monthly_report_submissions',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('employee_id', sa.String(50), nullable=False),
        sa.Column('month_key', sa.String(7), nullable=False),
        sa.Column('status', sa.String(30), nullable=False, server_default='pending_mentor'),
        sa.Column('mentor_id', sa.String(50), nullable=True),
        sa.Column('supervisor_id', sa.String(50), nullable=True),
        sa.Column('ka_unit_id', sa.String(50), nullable=True),
        sa.Column('manager_id', sa.String(50), nullable=True),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('mentor_notes', sa.Text, nullable=True),
        sa.Column('mentor_reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('supervisor_notes', sa.Text, nullable=True),
        sa.Column('supervisor_reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('kaunit_notes', sa.Text, nullable=True),
        sa.Column('kaunit_reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('manager_notes', sa.Text, nullable=True),
        sa.Column('manager_reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('report_data', sa.JSON, nullable=True),
        sa.Column('decision_log', sa.JSON, nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('employee_id', 'month_key', name='uq_monthly_report_submissions_employee_month'),
    )
    for column in ('employee_id', 'month_key', 'status', 'mentor_id', 'supervisor_id', 'ka_unit_id', 'manager_id'):
        op.create_index(f'ix_monthly_report_submissions_{column}', 'monthly_report_submissions', [column])

    # Manual requests
    for table, extra in (
        ('missed_prayer_requests', [
            sa.Column('prayer_id', sa.String(50), nullable=False),
            sa.Column('reason', sa.Text, nullable=True),
        ]),
        ('tadarus_requests', [
            sa.Column('category', sa.String(100), nullable=False, server_default='UMUM'),
            sa.Column('notes', sa.Text, nullable=True),
        ]),
    ):
        op.create_table(
            table,
            sa.Column('id', sa.Uuid, primary_key=True),
            sa.Column('mentee_id', sa.String(50), nullable=False),
            sa.Column('mentor_id', sa.String(50), nullable=True),
            sa.Column('date', sa.Date, nullable=False),
            *extra,
            sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
            sa.Column('mentor_notes', sa.Text, nullable=True),
            sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('reviewed_by_id', sa.String(50), nullable=True),
            *_timestamps(),
        )
        op.create_index(f'ix_{table}_mentee_id', table, ['mentee_id'])
        op.create_index(f'ix_{table}_mentor_id', table, ['mentor_id'])
        op.create_index(f'ix_{table}_status', table, ['status'])


def downgrade() -> None:
    for table in (
        'tadarus_requests',
        'missed_prayer_requests',
        'monthly_report_submissions',
        'mutabaah_activations',
        'employee_monthly_reports',
        'activity_attendance',
        'activities',
        'team_attendance_records',
        'attendance_records',
        'employees',
        'hospitals',
    ):
        op.drop_table(table)
