"""create users, students and attendance

Revision ID: a1c4e7d20b11
Revises:
Create Date: 2026-09-14 10:12:03.418221

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a1c4e7d20b11'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('role', sa.Enum('admin', 'teacher', 'student', name='user_role'), nullable=False),
        sa.Column('full_name', sa.String(), nullable=False),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'students',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('roll_number', sa.Integer(), nullable=False),
        sa.Column('full_name', sa.String(), nullable=False),
        sa.Column('grade', sa.String(), nullable=False),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_students_roll_number', 'students', ['roll_number'], unique=True)
    op.create_index('ix_students_full_name', 'students', ['full_name'])
    op.create_index('ix_students_grade', 'students', ['grade'])

    op.create_table(
        'attendance',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('student_id', sa.String(36), sa.ForeignKey('students.id'), nullable=False),
        sa.Column('class_name', sa.String(), nullable=False),
        sa.Column('teacher', sa.String(), nullable=False),
        sa.Column('username', sa.String(), nullable=False),
        sa.Column('day', sa.DateTime(), nullable=False),
        sa.Column('status', sa.Enum('Present', 'Absent', 'Leave', name='attendance_status'), nullable=False),
        sa.Column('correction_history', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('student_id', 'day', name='uq_attendance_student_day'),
    )
    op.create_index('ix_attendance_id', 'attendance', ['id'])
    op.create_index('ix_attendance_student_id', 'attendance', ['student_id'])
    op.create_index('ix_attendance_class_name', 'attendance', ['class_name'])
    op.create_index('ix_attendance_username', 'attendance', ['username'])
    op.create_index('ix_attendance_day', 'attendance', ['day'])


def downgrade() -> None:
    op.drop_table('attendance')
    op.drop_table('students')
    op.drop_table('users')
    sa.Enum(name='attendance_status').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='user_role').drop(op.get_bind(), checkfirst=True)
