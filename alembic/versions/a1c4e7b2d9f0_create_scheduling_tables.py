"""create_scheduling_tables

Revision ID: a1c4e7b2d9f0
Revises:
Create Date: 2026-10-18 09:00:00.000000

스케줄링 엔진 테이블 생성: facilities, workers, worker_facilities,
shift_templates, shifts, shift_assignments, shift_requests, shift_history.
Create the scheduling engine tables.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID


# revision identifiers, used by Alembic.
revision: str = 'a1c4e7b2d9f0'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # facilities — 시설 (directory, read-only to the engine)
    op.create_table(
        'facilities',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('timezone', sa.String(64), server_default='UTC', nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # workers — 직원 자격 프로필 (eligibility profiles, per-worker lock target)
    op.create_table(
        'workers',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('full_name', sa.String(200), nullable=False),
        sa.Column('specialty', sa.String(50), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('reliability_score', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # worker_facilities — 직원-시설 연결 (worker ↔ facility with favorite flag)
    op.create_table(
        'worker_facilities',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('worker_id', UUID(as_uuid=True), sa.ForeignKey('workers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('facility_id', UUID(as_uuid=True), sa.ForeignKey('facilities.id', ondelete='CASCADE'), nullable=False),
        sa.Column('is_favorite', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.UniqueConstraint('worker_id', 'facility_id', name='uq_worker_facility'),
    )

    # shift_templates — 반복 템플릿 (recurring templates)
    op.create_table(
        'shift_templates',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('facility_id', UUID(as_uuid=True), sa.ForeignKey('facilities.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('department', sa.String(100), nullable=False),
        sa.Column('specialty', sa.String(50), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('days_of_week', sa.JSON(), nullable=False),
        sa.Column('min_staff', sa.Integer(), server_default='1', nullable=False),
        sa.Column('max_staff', sa.Integer(), server_default='1', nullable=False),
        sa.Column('hourly_rate', sa.Numeric(8, 2), nullable=True),
        sa.Column('horizon_days', sa.Integer(), server_default='14', nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('generated_shifts_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_by', UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_shift_templates_facility_active', 'shift_templates', ['facility_id', 'is_active'])

    # shifts — 날짜가 확정된 시프트 (dated shifts, never deleted)
    op.create_table(
        'shifts',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('origin', sa.String(20), server_default='adhoc', nullable=False),
        sa.Column('shift_key', sa.String(120), nullable=True, unique=True),
        sa.Column('template_id', UUID(as_uuid=True), sa.ForeignKey('shift_templates.id', ondelete='SET NULL'), nullable=True),
        sa.Column('block_id', UUID(as_uuid=True), nullable=True),
        sa.Column('slot_index', sa.Integer(), nullable=True),
        sa.Column('facility_id', UUID(as_uuid=True), sa.ForeignKey('facilities.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('department', sa.String(100), nullable=False),
        sa.Column('specialty', sa.String(50), nullable=False),
        sa.Column('shift_date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('start_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('required_staff', sa.Integer(), server_default='1', nullable=False),
        sa.Column('max_staff', sa.Integer(), server_default='1', nullable=False),
        sa.Column('hourly_rate', sa.Numeric(8, 2), nullable=True),
        sa.Column('urgency', sa.String(20), server_default='medium', nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(30), server_default='open', nullable=False),
        sa.Column('assigned_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_by', UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_shifts_facility_date', 'shifts', ['facility_id', 'shift_date'])
    op.create_index('ix_shifts_template_date', 'shifts', ['template_id', 'shift_date'])
    op.create_index('ix_shifts_status', 'shifts', ['status'])

    # shift_assignments — 배정 (one active row per shift+worker)
    op.create_table(
        'shift_assignments',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('shift_id', UUID(as_uuid=True), sa.ForeignKey('shifts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('worker_id', UUID(as_uuid=True), sa.ForeignKey('workers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('assigned_by', UUID(as_uuid=True), nullable=True),
        sa.Column('assigned_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('revoked_by', UUID(as_uuid=True), nullable=True),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
    )
    # 활성 배정 유니크 — Partial unique index over active assignments
    op.create_index(
        'uq_shift_assignment_active',
        'shift_assignments',
        ['shift_id', 'worker_id'],
        unique=True,
        postgresql_where=sa.text('revoked_at IS NULL'),
    )
    op.create_index('ix_shift_assignments_worker', 'shift_assignments', ['worker_id'])

    # shift_requests — 근무 신청 (pending → approved | withdrawn)
    op.create_table(
        'shift_requests',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('shift_id', UUID(as_uuid=True), sa.ForeignKey('shifts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('worker_id', UUID(as_uuid=True), sa.ForeignKey('workers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(20), server_default='pending', nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('requested_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('processed_by', UUID(as_uuid=True), nullable=True),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_shift_requests_shift_status', 'shift_requests', ['shift_id', 'status'])

    # shift_history — 상태 이력 (append-only, one entry per status change)
    op.create_table(
        'shift_history',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('shift_id', UUID(as_uuid=True), sa.ForeignKey('shifts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('actor_id', UUID(as_uuid=True), nullable=True),
        sa.Column('actor_role', sa.String(30), nullable=True),
        sa.Column('initiated_by', sa.String(20), server_default='scheduler', nullable=False),
        sa.Column('previous_status', sa.String(30), nullable=True),
        sa.Column('new_status', sa.String(30), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('shift_id', 'sequence', name='uq_shift_history_sequence'),
    )


def downgrade() -> None:
    op.drop_table('shift_history')
    op.drop_index('ix_shift_requests_shift_status', table_name='shift_requests')
    op.drop_table('shift_requests')
    op.drop_index('ix_shift_assignments_worker', table_name='shift_assignments')
    op.drop_index('uq_shift_assignment_active', table_name='shift_assignments')
    op.drop_table('shift_assignments')
    op.drop_index('ix_shifts_status', table_name='shifts')
    op.drop_index('ix_shifts_template_date', table_name='shifts')
    op.drop_index('ix_shifts_facility_date', table_name='shifts')
    op.drop_table('shifts')
    op.drop_index('ix_shift_templates_facility_active', table_name='shift_templates')
    op.drop_table('shift_templates')
    op.drop_table('worker_facilities')
    op.drop_table('workers')
    op.drop_table('facilities')
