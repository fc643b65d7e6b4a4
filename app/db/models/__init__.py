from app.db.base import Base
from app.db.models.user import User
from app.db.models.student import Student
from app.db.models.attendance import Attendance

__all__ = ["Base", "User", "Student", "Attendance"]
