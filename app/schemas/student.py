from typing import Optional

from app.schemas.attendance import CamelModel


class StudentOut(CamelModel):
    id: str
    roll_number: int
    full_name: str
    grade: str
    phone: Optional[str] = None
    email: Optional[str] = None
