from datetime import datetime
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, StrictFloat, StrictInt, StrictStr, field_serializer
from pydantic.alias_generators import to_camel

from app.core.day_range import as_utc

# Идентификатор ученика: UUID или номер по журналу
# Строгие типы: JSON true не должен превращаться в 1
StudentRefIn = Union[StrictInt, StrictStr]
DateIn = Union[StrictInt, StrictFloat, StrictStr]


class CamelModel(BaseModel):
    # Клиенты шлют camelCase (studentId, className), snake_case тоже принимаем
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class AttendanceUpsert(CamelModel):
    student_id: Optional[StudentRefIn] = None
    student_ids: Optional[List[StudentRefIn]] = None
    class_name: Optional[str] = None
    teacher: Optional[str] = None
    username: Optional[str] = None
    date: Optional[DateIn] = None
    status: Optional[str] = None
    # "insert" — без перезаписи, совпадения возвращаются как дубликаты
    mode: Literal["upsert", "insert"] = "upsert"


class AttendanceCorrect(CamelModel):
    student_id: Optional[StudentRefIn] = None
    date: Optional[DateIn] = None
    new_status: Optional[str] = None
    reason: Optional[str] = None
    corrected_by: Optional[str] = None
    username: Optional[str] = None


class AttendancePatch(CamelModel):
    status: Optional[str] = None
    date: Optional[DateIn] = None
    teacher: Optional[str] = None
    username: Optional[str] = None
    class_name: Optional[str] = None
    corrected_by: Optional[str] = None
    reason: Optional[str] = None


class CorrectionEntryOut(CamelModel):
    changed_at: datetime
    changed_by: str
    from_status: str
    to_status: str
    reason: str

    @field_serializer("changed_at")
    def _serialize_changed_at(self, value: datetime):
        return as_utc(value)


class StudentBrief(CamelModel):
    id: str
    roll_number: int
    full_name: str
    grade: str


class AttendanceOut(CamelModel):
    id: int
    student_id: str
    student: Optional[StudentBrief] = None
    class_name: str
    teacher: str
    username: str
    day: datetime
    status: str
    correction_history: List[CorrectionEntryOut] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_serializer("day", "created_at", "updated_at")
    def _serialize_utc(self, value: Optional[datetime]):
        return as_utc(value)


class AttendancePage(CamelModel):
    total: int
    page: int
    limit: int
    total_pages: int = 0
    data: List[AttendanceOut]


class UpsertResultOut(CamelModel):
    message: str
    created: int
    updated: int
    duplicates: List[str] = []
    # student_id, которые не удалось записать
    failed: List[str] = []


class CorrectionResultOut(CamelModel):
    message: str
    changed: bool
    record: AttendanceOut


class RecordResultOut(CamelModel):
    message: str
    record: AttendanceOut


class WeekOut(CamelModel):
    week_start: datetime
    week_end: datetime
    records: List[AttendanceOut] = []

    @field_serializer("week_start", "week_end")
    def _serialize_utc(self, value: datetime):
        return as_utc(value)


class StudentWeeksOut(CamelModel):
    student: StudentBrief
    weeks: List[WeekOut]
