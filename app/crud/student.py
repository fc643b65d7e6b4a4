# app/crud/student.py
"""Справочник учеников и разбор ссылок на ученика.

Клиенты присылают ученика по-разному: внутренним UUID, номером по журналу
(число или строка с числом). Всё сводится к ``StudentRef`` и разрешается
здесь, в одном месте.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import Iterable, List, Optional, Union

from sqlalchemy.orm import Session

from app.core.errors import InvalidIdentifier, NoMatchingStudents, StudentNotFound
from app.db.models.student import Student

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ByInternalId:
    id: str


@dataclass(frozen=True)
class ByRollNumber:
    number: int


StudentRef = Union[ByInternalId, ByRollNumber]


def parse_student_ref(raw) -> StudentRef:
    if isinstance(raw, (ByInternalId, ByRollNumber)):
        return raw
    if isinstance(raw, bool) or raw is None:
        raise InvalidIdentifier(f"Некорректный идентификатор ученика: {raw!r}")
    if isinstance(raw, int):
        return ByRollNumber(raw)

    text = str(raw).strip()
    if not text:
        raise InvalidIdentifier("Пустой идентификатор ученика")
    try:
        return ByInternalId(str(uuid.UUID(text)))
    except ValueError:
        pass
    try:
        return ByRollNumber(int(text))
    except ValueError:
        raise InvalidIdentifier(f"Некорректный идентификатор ученика: {raw!r}")


def get_student_by_id(db: Session, student_id: str) -> Optional[Student]:
    return db.query(Student).filter(Student.id == student_id).first()


def get_student_by_roll_number(db: Session, roll_number: int) -> Optional[Student]:
    return db.query(Student).filter(Student.roll_number == roll_number).first()


def get_students_by_grade(db: Session, grade: str) -> List[Student]:
    return (
        db.query(Student)
        .filter(Student.grade == grade)
        .order_by(Student.roll_number)
        .all()
    )


def lookup_student(db: Session, ref: StudentRef) -> Optional[Student]:
    if isinstance(ref, ByInternalId):
        return get_student_by_id(db, ref.id)
    return get_student_by_roll_number(db, ref.number)


def resolve_student(db: Session, raw) -> Student:
    # Сначала UUID, затем номер по журналу — порядок задаёт parse_student_ref
    try:
        ref = parse_student_ref(raw)
    except InvalidIdentifier:
        raise StudentNotFound(f"Ученик не найден: {raw!r}")

    student = lookup_student(db, ref)
    if student is None:
        raise StudentNotFound(f"Ученик не найден: {raw!r}")
    return student


def resolve_students(db: Session, raws: Iterable) -> List[Student]:
    internal_ids, roll_numbers = [], []
    for raw in raws:
        try:
            ref = parse_student_ref(raw)
        except InvalidIdentifier:
            logger.debug(f"Пропускаем некорректный идентификатор: {raw!r}")
            continue
        if isinstance(ref, ByInternalId):
            internal_ids.append(ref.id)
        else:
            roll_numbers.append(ref.number)

    found = []
    if internal_ids:
        found += db.query(Student).filter(Student.id.in_(internal_ids)).all()
    if roll_numbers:
        found += db.query(Student).filter(Student.roll_number.in_(roll_numbers)).all()

    # Один ученик мог прийти и по UUID, и по номеру
    unique = list({s.id: s for s in found}.values())
    if not unique:
        raise NoMatchingStudents("Не найдено ни одного ученика")
    return unique


def find_students(db: Session, grade: Optional[str] = None, name: Optional[str] = None) -> List[Student]:
    """Ученики класса и/или с подстрокой в ФИО (без учёта регистра).

    Пустой список — это не ошибка: вызывающий код трактует его как
    "записей нет".
    """
    query = db.query(Student)
    if grade:
        query = query.filter(Student.grade == grade)
    if name:
        query = query.filter(Student.full_name.ilike(f"%{name}%"))
    return query.all()
