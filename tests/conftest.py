import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.security import create_access_token, get_password_hash
from app.db import Base, Student, User
from app.db.session import get_db, make_engine
from app.main import app

STUDENT_42_ID = "3f2b9c1e-8a4d-4e6f-9b1a-2c3d4e5f6a7b"


@pytest.fixture
def engine():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def students(db):
    rows = [
        Student(id=STUDENT_42_ID, roll_number=42, full_name="Иванов Пётр", grade="5A"),
        Student(roll_number=43, full_name="Петрова Анна", grade="5A"),
        Student(roll_number=44, full_name="Сидоров Иван", grade="5A"),
        Student(roll_number=50, full_name="Anna Smith", grade="6B"),
    ]
    db.add_all(rows)
    db.commit()
    return {s.roll_number: s for s in rows}


@pytest.fixture
def users(db):
    rows = {
        "teacher": User(
            email="teacher@school.local",
            hashed_password=get_password_hash("secret"),
            full_name="Учитель Один",
            role="teacher",
            is_verified=True,
        ),
        "admin": User(
            email="admin@school.local",
            hashed_password=get_password_hash("secret"),
            full_name="Администратор",
            role="admin",
            is_verified=True,
        ),
        "student": User(
            email="pupil@school.local",
            hashed_password=get_password_hash("secret"),
            full_name="Ученик",
            role="student",
        ),
    }
    db.add_all(rows.values())
    db.commit()
    return rows


def auth_headers(email: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(data={'sub': email})}"}


@pytest.fixture
def teacher_headers(users):
    return auth_headers(users["teacher"].email)


@pytest.fixture
def admin_headers(users):
    return auth_headers(users["admin"].email)


@pytest.fixture
def student_headers(users):
    return auth_headers(users["student"].email)


@pytest.fixture
def client(db):
    # Приложение и тест работают с одной сессией на in-memory базе
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
