import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import IntegrityError

from app.api import attendance, auth, students
from app.core.config import settings
from app.core.errors import (
    AttendanceError,
    DuplicateRecord,
    InvalidDate,
    InvalidIdentifier,
    InvalidStatus,
)
from app.core.logging import setup_logging
from app.crud.attendance import is_unique_violation
from app.crud.user import ensure_admin
from app.db.session import SessionLocal

setup_logging()
logger = logging.getLogger(__name__)

# Поле запроса -> ошибка, которой отвечаем, если его не удалось разобрать
FIELD_ERRORS = {
    "date": InvalidDate,
    "dateFrom": InvalidDate,
    "dateTo": InvalidDate,
    "studentId": InvalidIdentifier,
    "studentIds": InvalidIdentifier,
    "student": InvalidIdentifier,
    "status": InvalidStatus,
    "newStatus": InvalidStatus,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Первый администратор из .env (FIRST_ADMIN_EMAIL / FIRST_ADMIN_PASSWORD)
    if settings.FIRST_ADMIN_EMAIL and settings.FIRST_ADMIN_PASSWORD:
        db = SessionLocal()
        try:
            ensure_admin(
                db,
                email=settings.FIRST_ADMIN_EMAIL,
                password=settings.FIRST_ADMIN_PASSWORD,
                full_name=settings.FIRST_ADMIN_FULL_NAME,
            )
        finally:
            db.close()
    yield


app = FastAPI(title="School attendance", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AttendanceError)
async def attendance_error_handler(request: Request, exc: AttendanceError):
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}: {exc.message}")
    content = {"detail": exc.message, "code": exc.code}
    if exc.context:
        content["context"] = exc.context
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    # Ключ (ученик, день) нарушен где-то вне upsert
    if is_unique_violation(exc):
        logger.warning(f"⚠️ Нарушение уникальности: {exc.orig}")
        return await attendance_error_handler(request, DuplicateRecord())
    logger.error(f"❌ Ошибка целостности данных {request.method} {request.url.path}: {exc.orig}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Ошибка целостности данных", "code": "IntegrityError"},
    )


# Кривое тело запроса — это 400, как и остальные ошибки ввода
@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    for err in errors:
        loc = err.get("loc", ())
        if len(loc) > 1 and isinstance(loc[1], str):
            error_cls = FIELD_ERRORS.get(loc[1]) or FIELD_ERRORS.get(to_camel(loc[1]))
            if error_cls is not None:
                return await attendance_error_handler(
                    request, error_cls(f"Некорректное значение поля {loc[1]}")
                )
    return JSONResponse(
        status_code=400,
        content={"detail": jsonable_errors(errors), "code": "InvalidRequest"},
    )


def jsonable_errors(errors: list) -> list:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in errors
    ]


app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(students.router, prefix="/api/students", tags=["students"])
app.include_router(attendance.router, prefix="/api/attendance", tags=["attendance"])
