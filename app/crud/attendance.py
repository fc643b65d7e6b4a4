# app/crud/attendance.py
"""Запись посещаемости: upsert по (ученик, день) и исправления статуса.

Ключ записи — (student_id, day). Уникальность держит сама база
(uq_attendance_student_day); здесь мы только решаем, что делать при
совпадении ключа: перезаписать (upsert) или вернуть как дубликат (insert).
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.core.day_range import DayRange, to_day_range
from app.core.errors import DuplicateRecord, InvalidStatus, MissingRequiredField, RecordNotFound
from app.db.models.attendance import VALID_STATUS, Attendance
from app.db.models.student import Student

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"
CORRECTION_REASON = "manual correction"
PATCH_REASON = "manual patch"


@dataclass
class UpsertResult:
    created: int = 0
    updated: int = 0
    # student_id тех ключей, что уже существовали при insert без перезаписи
    duplicates: List[str] = field(default_factory=list)
    # student_id, которые не удалось записать (например, ученик уже удалён)
    failed: List[str] = field(default_factory=list)


def is_unique_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    if getattr(orig, "pgcode", None) == "23505":
        return True
    return "unique" in str(orig).lower()


def validate_status(status: Optional[str], field_name: str = "status") -> str:
    if status not in VALID_STATUS:
        raise InvalidStatus(
            f"{field_name} должен быть одним из: {', '.join(VALID_STATUS)}",
            value=status,
        )
    return status


def require_fields(**values) -> None:
    missing = [name for name, value in values.items() if value is None or value == ""]
    if missing:
        raise MissingRequiredField(
            f"Обязательные поля: {', '.join(missing)}",
            missing=missing,
        )


def pick_actor(*candidates: Optional[str]) -> str:
    for candidate in candidates:
        if candidate:
            return candidate
    return SYSTEM_ACTOR


def append_correction(record: Attendance, new_status: str, actor: str, reason: str) -> None:
    """Меняет статус и дописывает запись в журнал.

    Журнал только растёт; если статус не меняется, ничего не пишем.
    """
    from_status = record.status
    if from_status == new_status:
        return
    record.status = new_status
    if record.correction_history is None:
        record.correction_history = []
    record.correction_history.append({
        "changed_at": datetime.now(timezone.utc).isoformat(),
        "changed_by": actor,
        "from_status": from_status,
        "to_status": new_status,
        "reason": reason,
    })


def _unique_ids(students: Sequence[Student]) -> List[str]:
    return list(dict.fromkeys(s.id for s in students))


def _existing_records(db: Session, student_ids: List[str], day: DayRange) -> dict:
    if not student_ids:
        return {}
    rows = db.query(Attendance).filter(
        Attendance.student_id.in_(student_ids),
        Attendance.day == day.start,
    ).all()
    return {row.student_id: row for row in rows}


def _overwrite(record: Attendance, day: DayRange, class_name: str, teacher: str, username: str, status: str) -> None:
    record.class_name = class_name
    record.teacher = teacher
    record.username = username
    record.day = day.start
    record.status = status


def upsert_attendance(
    db: Session,
    students: Sequence[Student],
    day: DayRange,
    *,
    class_name: str,
    teacher: str,
    username: str,
    status: str,
) -> UpsertResult:
    validate_status(status)
    student_ids = _unique_ids(students)
    existing = _existing_records(db, student_ids, day)
    result = UpsertResult()

    # Каждый ключ в своём SAVEPOINT: сбой одного не откатывает остальные
    for student_id in student_ids:
        record = existing.get(student_id)
        if record is not None:
            with db.begin_nested():
                _overwrite(record, day, class_name, teacher, username, status)
            result.updated += 1
            continue

        try:
            with db.begin_nested():
                db.add(Attendance(
                    student_id=student_id,
                    class_name=class_name,
                    teacher=teacher,
                    username=username,
                    day=day.start,
                    status=status,
                    correction_history=[],
                ))
            result.created += 1
        except IntegrityError as exc:
            record = None
            if is_unique_violation(exc):
                # Параллельный запрос успел создать запись — перезаписываем её
                logger.warning(f"⚠️ Гонка на ключе ({student_id}, {day.day}), переходим к обновлению")
                record = db.query(Attendance).filter(
                    Attendance.student_id == student_id,
                    Attendance.day == day.start,
                ).first()
            if record is None:
                logger.warning(f"⚠️ Не удалось записать ({student_id}, {day.day}): {exc.orig}")
                result.failed.append(student_id)
                continue
            with db.begin_nested():
                _overwrite(record, day, class_name, teacher, username, status)
            result.updated += 1

    db.commit()
    logger.info(
        f"✅ Посещаемость за {day.day}: создано={result.created}, обновлено={result.updated}, "
        f"ошибок={len(result.failed)} ({username})"
    )
    return result


def insert_attendance(
    db: Session,
    students: Sequence[Student],
    day: DayRange,
    *,
    class_name: str,
    teacher: str,
    username: str,
    status: str,
) -> UpsertResult:
    """Вставка без перезаписи: совпавшие ключи возвращаются в duplicates."""
    validate_status(status)
    result = UpsertResult()

    for student_id in _unique_ids(students):
        try:
            with db.begin_nested():
                db.add(Attendance(
                    student_id=student_id,
                    class_name=class_name,
                    teacher=teacher,
                    username=username,
                    day=day.start,
                    status=status,
                    correction_history=[],
                ))
            result.created += 1
        except IntegrityError as exc:
            if is_unique_violation(exc):
                logger.info(f"Дубликат ({student_id}, {day.day}) пропущен")
                result.duplicates.append(student_id)
            else:
                logger.warning(f"⚠️ Не удалось записать ({student_id}, {day.day}): {exc.orig}")
                result.failed.append(student_id)

    db.commit()
    logger.info(
        f"✅ Вставка за {day.day}: создано={result.created}, дубликатов={len(result.duplicates)}"
    )
    return result


def get_attendance(db: Session, record_id: int) -> Attendance:
    record = (
        db.query(Attendance)
        .options(joinedload(Attendance.student))
        .filter(Attendance.id == record_id)
        .first()
    )
    if record is None:
        raise RecordNotFound()
    return record


def find_attendance(db: Session, student: Student, day: DayRange) -> Optional[Attendance]:
    return db.query(Attendance).filter(
        Attendance.student_id == student.id,
        Attendance.day >= day.start,
        Attendance.day < day.end,
    ).first()


def correct_attendance(
    db: Session,
    student: Student,
    day: DayRange,
    new_status: str,
    *,
    reason: Optional[str] = None,
    actor: Optional[str] = None,
) -> tuple[Attendance, bool]:
    """Исправляет статус записи за день. Возвращает (запись, изменилась ли)."""
    validate_status(new_status, "newStatus")
    record = find_attendance(db, student, day)
    if record is None:
        raise RecordNotFound("Запись посещаемости за этот день не найдена")

    if record.status == new_status:
        return record, False

    append_correction(record, new_status, pick_actor(actor), reason or CORRECTION_REASON)
    db.commit()
    db.refresh(record)
    logger.info(f"✏️ Исправлена посещаемость id={record.id}: -> {new_status}")
    return record, True


def patch_attendance(
    db: Session,
    record_id: int,
    *,
    status: Optional[str] = None,
    date=None,
    teacher: Optional[str] = None,
    username: Optional[str] = None,
    class_name: Optional[str] = None,
    corrected_by: Optional[str] = None,
    reason: Optional[str] = None,
) -> Attendance:
    # Сначала проверяем ввод, потом ищем запись
    if status is not None:
        validate_status(status)
    day = to_day_range(date) if date is not None else None

    record = get_attendance(db, record_id)

    if day is not None:
        record.day = day.start
    if teacher:
        record.teacher = teacher
    if username:
        record.username = username
    if class_name:
        record.class_name = class_name
    if status is not None:
        append_correction(record, status, pick_actor(corrected_by, username), reason or PATCH_REASON)

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if not is_unique_violation(exc):
            raise
        raise DuplicateRecord("На эту дату у ученика уже есть запись")
    db.refresh(record)
    logger.info(f"✏️ Обновлена запись посещаемости id={record.id}")
    return record


def delete_attendance(db: Session, record_id: int) -> None:
    record = db.query(Attendance).filter(Attendance.id == record_id).first()
    if record is None:
        raise RecordNotFound()
    db.delete(record)
    db.commit()
    logger.info(f"🗑️ Удалена запись посещаемости id={record_id}")
