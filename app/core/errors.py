# app/core/errors.py
"""Ошибки посещаемости.

Каждое исключение знает свой HTTP-статус; обработчик в app.main
превращает его в ответ {"detail": ..., "code": ...}.
"""


class AttendanceError(Exception):
    status_code = 400
    default_message = "Некорректный запрос"

    def __init__(self, message: str | None = None, **context):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    @property
    def code(self) -> str:
        return type(self).__name__


class InvalidDate(AttendanceError):
    default_message = "Некорректная дата"


class InvalidStatus(AttendanceError):
    default_message = "Недопустимый статус"


class MissingRequiredField(AttendanceError):
    default_message = "Не заполнены обязательные поля"


class InvalidIdentifier(AttendanceError):
    default_message = "Некорректный идентификатор ученика"


class StudentNotFound(AttendanceError):
    status_code = 404
    default_message = "Ученик не найден"


class NoMatchingStudents(AttendanceError):
    status_code = 404
    default_message = "Подходящие ученики не найдены"


class RecordNotFound(AttendanceError):
    status_code = 404
    default_message = "Запись посещаемости не найдена"


class DuplicateRecord(AttendanceError):
    status_code = 409
    default_message = "Запись для этого ученика и дня уже существует"
