"""initial enrollment schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _base_columns():
    return [
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        *_base_columns(),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('email', sa.String(100), unique=True),
        sa.Column('password_hash', sa.String(60), nullable=False),
        sa.Column('role', sa.String(20), nullable=False, server_default='student'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
    )

    op.create_table(
        'students',
        *_base_columns(),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True, index=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('email', sa.String(100), index=True),
        sa.Column('cpf', sa.String(14), index=True),
    )

    op.create_table(
        'courses',
        *_base_columns(),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('duration', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('duration_type', sa.String(50), nullable=False, server_default='Semestres'),
        sa.Column('course_type', sa.String(50), nullable=False, server_default='Superior'),
        sa.CheckConstraint('duration >= 1', name='ck_courses_duration'),
    )

    op.create_table(
        'enrollments',
        *_base_columns(),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('students.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('course_id', sa.Integer(), sa.ForeignKey('courses.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending', index=True),
        sa.Column('enrollment_date', sa.Date(), nullable=False),
        sa.Column('current_semester', sa.Integer(), nullable=True),
        sa.Column('period_semester', sa.Integer(), nullable=True),
        sa.Column('period_year', sa.Integer(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.CheckConstraint(
            "status IN ('contract', 'pending', 'active', 'cancelled', 'reenrollment', 'completed')",
            name='ck_enrollments_status',
        ),
        sa.CheckConstraint('current_semester IS NULL OR current_semester >= 1', name='ck_enrollments_current_semester'),
        sa.CheckConstraint('period_semester IS NULL OR period_semester IN (1, 2)', name='ck_enrollments_period_semester'),
    )
    # At most one active/pending/contract enrollment per student
    op.create_index(
        'uq_enrollments_student_open',
        'enrollments',
        ['student_id'],
        unique=True,
        postgresql_where=sa.text("status IN ('active', 'contract', 'pending') AND is_deleted = false"),
    )

    op.create_table(
        'contracts',
        *_base_columns(),
        sa.Column('enrollment_id', sa.Integer(), sa.ForeignKey('enrollments.id'), nullable=False, index=True),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('students.id'), nullable=False, index=True),
        sa.Column('semester', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('file_name', sa.String(255), nullable=True),
        sa.CheckConstraint('semester IN (1, 2)', name='ck_contracts_semester'),
    )
    op.create_index(
        'uq_contracts_enrollment_period',
        'contracts',
        ['enrollment_id', 'semester', 'year'],
        unique=True,
        postgresql_where=sa.text('is_deleted = false'),
    )

    op.create_table(
        'document_types',
        *_base_columns(),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('is_required', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('user_type', sa.String(20), nullable=False, server_default='student'),
    )

    op.create_table(
        'documents',
        *_base_columns(),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('students.id'), nullable=False, index=True),
        sa.Column('document_type_id', sa.Integer(), sa.ForeignKey('document_types.id'), nullable=False, index=True),
        sa.Column('reviewed_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('file_name', sa.String(255)),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending', index=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True)),
        sa.Column('observations', sa.Text()),
    )


def downgrade() -> None:
    op.drop_table('documents')
    op.drop_table('document_types')
    op.drop_index('uq_contracts_enrollment_period', table_name='contracts')
    op.drop_table('contracts')
    op.drop_index('uq_enrollments_student_open', table_name='enrollments')
    op.drop_table('enrollments')
    op.drop_table('courses')
    op.drop_table('students')
    op.drop_table('users')
