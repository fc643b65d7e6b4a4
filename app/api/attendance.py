# app/api/attendance.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_admin, require_staff
from app.core.day_range import to_day_range
from app.core.errors import DuplicateRecord, MissingRequiredField
from app.core.config import settings
from app.crud import attendance as crud_attendance
from app.crud.attendance_query import (
    AttendanceFilter,
    list_attendance,
    list_attendance_by_student_weeks,
    list_attendance_by_user,
)
from app.crud.student import resolve_student, resolve_students
from app.db.models.user import User
from app.schemas.attendance import (
    AttendanceCorrect,
    AttendanceOut,
    AttendancePage,
    AttendancePatch,
    AttendanceUpsert,
    CorrectionResultOut,
    RecordResultOut,
    StudentWeeksOut,
    UpsertResultOut,
)

router = APIRouter()
logger = logging.getLogger(__name__)


# Создать или обновить посещаемость (одного ученика или сразу нескольких)
@router.post("", response_model=UpsertResultOut)
def save_attendance(
    payload: AttendanceUpsert,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    # Всё проверяем до первой записи в базу
    crud_attendance.require_fields(
        className=payload.class_name,
        teacher=payload.teacher,
        username=payload.username,
        date=payload.date,
        status=payload.status,
    )
    crud_attendance.validate_status(payload.status)
    day = to_day_range(payload.date)

    if payload.student_ids:
        students = resolve_students(db, payload.student_ids)
    elif payload.student_id is not None:
        students = [resolve_student(db, payload.student_id)]
    else:
        raise MissingRequiredField("Укажите studentId или studentIds", missing=["studentId"])

    write = (
        crud_attendance.insert_attendance
        if payload.mode == "insert"
        else crud_attendance.upsert_attendance
    )
    result = write(
        db,
        students,
        day,
        class_name=payload.class_name,
        teacher=payload.teacher,
        username=payload.username,
        status=payload.status,
    )

    if result.duplicates and not result.created:
        raise DuplicateRecord(
            "Записи для этих учеников и дня уже существуют",
            duplicates=result.duplicates,
        )

    return {
        "message": "Посещаемость сохранена",
        "created": result.created,
        "updated": result.updated,
        "duplicates": result.duplicates,
        "failed": result.failed,
    }


# Список посещаемости с фильтрами
@router.get("", response_model=AttendancePage)
def get_attendance_list(
    class_name: Optional[str] = Query(None, alias="className"),
    name: Optional[str] = None,
    username: Optional[str] = None,
    student: Optional[str] = None,
    student_id: Optional[str] = Query(None, alias="studentId"),
    date: Optional[str] = None,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = settings.DEFAULT_PAGE_LIMIT,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    flt = AttendanceFilter(
        class_name=class_name,
        name=name,
        username=username,
        student=student or student_id,
        date=date,
        status=status,
        page=page,
        limit=limit,
    )
    return list_attendance(db, flt)


# Всё, что отметил конкретный пользователь
@router.get("/by-user", response_model=AttendancePage)
def get_attendance_by_user(
    username: Optional[str] = None,
    status: Optional[str] = None,
    date_from: Optional[str] = Query(None, alias="dateFrom"),
    date_to: Optional[str] = Query(None, alias="dateTo"),
    page: int = 1,
    limit: int = settings.DEFAULT_PAGE_LIMIT,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    return list_attendance_by_user(
        db,
        username,
        status=status,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )


# Посещаемость ученика по ФИО, разбитая по неделям (с понедельника, UTC)
@router.get("/by-student-name", response_model=StudentWeeksOut)
def get_attendance_by_student_name(
    name: Optional[str] = None,
    weeks: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    return list_attendance_by_student_weeks(db, name, weeks)


# Исправить статус по ученику и дню (без id записи)
@router.patch("/correct", response_model=CorrectionResultOut)
def correct_attendance(
    payload: AttendanceCorrect,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    crud_attendance.require_fields(
        studentId=payload.student_id,
        date=payload.date,
        newStatus=payload.new_status,
    )
    crud_attendance.validate_status(payload.new_status, "newStatus")
    day = to_day_range(payload.date)
    student = resolve_student(db, payload.student_id)

    record, changed = crud_attendance.correct_attendance(
        db,
        student,
        day,
        payload.new_status,
        reason=payload.reason,
        actor=crud_attendance.pick_actor(payload.corrected_by, payload.username),
    )
    message = "Посещаемость исправлена" if changed else "Статус уже установлен, изменений нет"
    return {"message": message, "changed": changed, "record": record}


@router.get("/{record_id}", response_model=AttendanceOut)
def get_attendance_record(
    record_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    return crud_attendance.get_attendance(db, record_id)


# Частичное обновление по id
@router.patch("/{record_id}", response_model=RecordResultOut)
def update_attendance_record(
    record_id: int,
    payload: AttendancePatch,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    record = crud_attendance.patch_attendance(
        db,
        record_id,
        status=payload.status,
        date=payload.date,
        teacher=payload.teacher,
        username=payload.username,
        class_name=payload.class_name,
        corrected_by=payload.corrected_by,
        reason=payload.reason,
    )
    return {"message": "Посещаемость обновлена", "record": record}


@router.delete("/{record_id}")
def delete_attendance_record(
    record_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    crud_attendance.delete_attendance(db, record_id)
    logger.info(f"🗑️ Запись id={record_id} удалена пользователем {current_user.email}")
    return {"message": "Запись посещаемости удалена"}
