"""import legacy attendance keyed by roll number

Старые инсталляции хранили посещаемость в attendance_by_roll с ключом
(roll_number, date) без ссылки на учеников. Переносим эти строки в
attendance, сопоставляя номер по журналу с students.roll_number.

Revision ID: b7f3d9e5c402
Revises: a1c4e7d20b11
Create Date: 2026-09-21 18:40:57.102945

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision: str = 'b7f3d9e5c402'
down_revision: Union[str, None] = 'a1c4e7d20b11'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

LEGACY_TABLE = 'attendance_by_roll'


def table_exists(table_name: str) -> bool:
    conn = op.get_bind()
    inspector = inspect(conn)
    return table_name in inspector.get_table_names()


def upgrade() -> None:
    # Новые базы таблицы не имеют — переносить нечего
    if not table_exists(LEGACY_TABLE):
        return

    conn = op.get_bind()
    # Даты в старой таблице уже приведены к полуночи UTC
    conn.execute(sa.text(f"""
        INSERT INTO attendance
            (student_id, class_name, teacher, username, day, status,
             correction_history, created_at, updated_at)
        SELECT s.id, l.class_name, l.teacher, l.username, l.date, l.status,
               COALESCE(l.correction_history, '[]'), l.created_at, l.updated_at
        FROM {LEGACY_TABLE} l
        JOIN students s ON s.roll_number = l.roll_number
        WHERE NOT EXISTS (
            SELECT 1 FROM attendance a
            WHERE a.student_id = s.id AND a.day = l.date
        )
    """))

    orphans = conn.execute(sa.text(f"""
        SELECT COUNT(*) FROM {LEGACY_TABLE} l
        WHERE NOT EXISTS (SELECT 1 FROM students s WHERE s.roll_number = l.roll_number)
    """)).scalar()
    if orphans:
        print(f"⚠️ {orphans} строк из {LEGACY_TABLE} без ученика — оставлены в старой таблице")


def downgrade() -> None:
    # Перенос необратим: старая таблица не трогается, новые строки не отличить от перенесённых
    pass
