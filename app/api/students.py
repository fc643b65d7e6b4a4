# app/api/students.py
from typing import List

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_staff
from app.crud.student import get_students_by_grade, resolve_student
from app.db.models.user import User
from app.schemas.student import StudentOut

router = APIRouter()


@router.get("/grade/{grade}", response_model=List[StudentOut])
def get_students_by_grade_endpoint(
    grade: str = Path(..., description="Класс, например: 5A, 10-МАТ"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    return get_students_by_grade(db, grade)


# ref — UUID ученика или номер по журналу
@router.get("/{ref}", response_model=StudentOut)
def get_student(
    ref: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    return resolve_student(db, ref)
