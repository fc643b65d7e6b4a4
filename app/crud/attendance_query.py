# app/crud/attendance_query.py
import logging
import math
from dataclasses import dataclass, field
from datetime import date as date_type, datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from app.core.config import settings
from app.core.day_range import to_day_range
from app.core.errors import MissingRequiredField, StudentNotFound
from app.crud.attendance import validate_status
from app.crud.student import find_students, lookup_student, parse_student_ref
from app.db.models.attendance import Attendance
from app.db.models.student import Student

logger = logging.getLogger(__name__)


@dataclass
class AttendanceFilter:
    class_name: Optional[str] = None
    name: Optional[str] = None
    username: Optional[str] = None
    student: Optional[str] = None
    date: Optional[str] = None
    status: Optional[str] = None
    page: int = 1
    limit: int = settings.DEFAULT_PAGE_LIMIT


@dataclass
class Page:
    total: int
    page: int
    limit: int
    data: List[Attendance]
    total_pages: int = 0


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_attendance_conditions(db: Session, flt: AttendanceFilter) -> Optional[list]:
    """Условия выборки посещаемости.

    ``None`` означает "заведомо пусто": ученик не найден или в классе
    никого нет. Тогда саму посещаемость можно не запрашивать.
    """
    conditions = []

    if not _blank(flt.username):
        conditions.append(Attendance.username.ilike(f"%{flt.username.strip()}%"))

    if not _blank(flt.status):
        conditions.append(Attendance.status == validate_status(flt.status))

    if not _blank(flt.date):
        day = to_day_range(flt.date)
        conditions.append(Attendance.day >= day.start)
        conditions.append(Attendance.day < day.end)

    # Явный ученик важнее класса и ФИО
    if not _blank(flt.student):
        ref = parse_student_ref(flt.student)
        student = lookup_student(db, ref)
        if student is None:
            logger.debug(f"Ученик {flt.student!r} не найден — пустой результат")
            return None
        conditions.append(Attendance.student_id == student.id)
    elif not _blank(flt.class_name) or not _blank(flt.name):
        students = find_students(
            db,
            grade=None if _blank(flt.class_name) else flt.class_name.strip(),
            name=None if _blank(flt.name) else flt.name.strip(),
        )
        if not students:
            return None
        conditions.append(Attendance.student_id.in_([s.id for s in students]))

    return conditions


def paginate(db: Session, conditions: Optional[list], page: int, limit: int) -> Page:
    page = max(1, page)
    limit = max(1, limit)
    if conditions is None:
        return Page(total=0, page=page, limit=limit, data=[], total_pages=0)

    query = db.query(Attendance).filter(*conditions)
    total = query.count()
    records = (
        query.options(joinedload(Attendance.student))
        .order_by(Attendance.day.desc(), Attendance.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return Page(
        total=total,
        page=page,
        limit=limit,
        data=records,
        total_pages=math.ceil(total / limit),
    )


def list_attendance(db: Session, flt: AttendanceFilter) -> Page:
    conditions = build_attendance_conditions(db, flt)
    logger.debug(f"Фильтр посещаемости: {flt} -> {conditions}")
    return paginate(db, conditions, flt.page, flt.limit)


def list_attendance_by_user(
    db: Session,
    username: Optional[str],
    *,
    status: Optional[str] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    page: int = 1,
    limit: int = settings.DEFAULT_PAGE_LIMIT,
) -> Page:
    """Всё, что отметил конкретный пользователь (username без учёта регистра)."""
    limit = min(limit, settings.BY_USER_MAX_LIMIT)
    if _blank(username):
        raise MissingRequiredField("Параметр username обязателен", missing=["username"])

    conditions = [func.lower(Attendance.username) == username.strip().lower()]
    if not _blank(status):
        conditions.append(Attendance.status == validate_status(status))
    # Обе границы включительно, с точностью до дня
    if not _blank(date_from):
        conditions.append(Attendance.day >= to_day_range(date_from).start)
    if not _blank(date_to):
        conditions.append(Attendance.day < to_day_range(date_to).end)

    return paginate(db, conditions, page, limit)


MAX_WEEKS = 52
ONE_WEEK = timedelta(days=7)


@dataclass
class WeekBucket:
    week_start: datetime
    week_end: datetime
    records: List[Attendance] = field(default_factory=list)


@dataclass
class StudentWeeks:
    student: Student
    weeks: List[WeekBucket]


def parse_weeks(raw) -> int:
    # Мусор и ноль дают одну неделю, остальное зажимаем в 1..52
    try:
        weeks = int(str(raw).strip()) if raw is not None else 1
    except ValueError:
        weeks = 1
    return max(1, min(MAX_WEEKS, weeks or 1))


def week_start(today: date_type) -> datetime:
    """Понедельник недели, в которую попадает ``today`` (полночь UTC)."""
    monday = today - timedelta(days=today.weekday())
    return datetime(monday.year, monday.month, monday.day)


def list_attendance_by_student_weeks(
    db: Session,
    name: Optional[str],
    weeks=None,
    today: Optional[date_type] = None,
) -> StudentWeeks:
    """Посещаемость ученика (по точному ФИО) за последние недели.

    Первая корзина — текущая неделя с понедельника, дальше по убыванию.
    Внутри недели записи идут по дню.
    """
    if _blank(name):
        raise MissingRequiredField("Параметр name обязателен", missing=["name"])
    name = name.strip()

    student = (
        db.query(Student)
        .filter(Student.full_name.ilike(_escape_like(name), escape="\\"))
        .first()
    )
    if student is None:
        raise StudentNotFound(f"Ученик не найден: {name}")

    count = parse_weeks(weeks)
    if today is None:
        today = datetime.now(timezone.utc).date()
    current = week_start(today)

    buckets = []
    for i in range(count):
        start = current - i * ONE_WEEK
        records = (
            db.query(Attendance)
            .options(joinedload(Attendance.student))
            .filter(
                Attendance.student_id == student.id,
                Attendance.day >= start,
                Attendance.day < start + ONE_WEEK,
            )
            .order_by(Attendance.day.asc())
            .all()
        )
        buckets.append(WeekBucket(
            week_start=start,
            week_end=start + ONE_WEEK - timedelta(milliseconds=1),
            records=records,
        ))

    logger.debug(f"Посещаемость {student.full_name} за {count} нед.")
    return StudentWeeks(student=student, weeks=buckets)
