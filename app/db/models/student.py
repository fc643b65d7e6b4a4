# app/db/models/student.py
import uuid

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.db.base import Base


def new_student_id() -> str:
    return str(uuid.uuid4())


class Student(Base):
    __tablename__ = "students"

    # Внутренний идентификатор (UUID) — им ключуется посещаемость
    id = Column(String(36), primary_key=True, default=new_student_id)
    # Номер по журналу, выдаётся администрацией школы
    roll_number = Column(Integer, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=False, index=True)
    grade = Column(String, nullable=False, index=True)  # "5A", "10-МАТ"
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    attendance_records = relationship("Attendance", back_populates="student")
