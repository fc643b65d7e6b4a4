# app/db/__init__.py
# Этот файл гарантирует, что все модели импортированы при первом импорте app.db

from app.db.base import Base
from app.db.models.user import User
from app.db.models.student import Student
from app.db.models.attendance import Attendance

# Экспортируем Base и модели наружу
__all__ = ["Base", "User", "Student", "Attendance"]
