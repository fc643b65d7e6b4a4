# app/db/models/attendance.py
from sqlalchemy import JSON, Column, DateTime, Enum, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.ext.mutable import MutableList
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.db.base import Base

VALID_STATUS = ("Present", "Absent", "Leave")


class Attendance(Base):
    __tablename__ = "attendance"
    # Одна запись на (ученик, день)
    __table_args__ = (
        UniqueConstraint("student_id", "day", name="uq_attendance_student_day"),
    )

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(String(36), ForeignKey("students.id"), nullable=False, index=True)
    class_name = Column(String, nullable=False, index=True)
    teacher = Column(String, nullable=False)
    username = Column(String, nullable=False, index=True)  # кто отметил
    day = Column(DateTime, nullable=False, index=True)  # полночь UTC, без времени суток
    status = Column(Enum(*VALID_STATUS, name="attendance_status"), nullable=False)

    # Журнал исправлений статуса:
    # {"changed_at", "changed_by", "from_status", "to_status", "reason"}
    correction_history = Column(MutableList.as_mutable(JSON), nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    student = relationship("Student", back_populates="attendance_records")
