# app/core/config.py
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    SECRET_KEY: str = "your-super-secret-jwt-key-change-in-prod"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 10080  # 7 days

    DATABASE_URL: str = "sqlite:///./school.db"
    SQL_ECHO: bool = False

    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: List[str] = [
        "http://localhost",
        "http://127.0.0.1",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:8000",
    ]

    # Размер страницы по умолчанию для списков посещаемости
    DEFAULT_PAGE_LIMIT: int = 50
    # Потолок limit для выборки по пользователю
    BY_USER_MAX_LIMIT: int = 500

    # Администратор, создаваемый при старте, если его ещё нет
    FIRST_ADMIN_EMAIL: Optional[str] = None
    FIRST_ADMIN_PASSWORD: Optional[str] = None
    FIRST_ADMIN_FULL_NAME: str = "Администратор"

    class Config:
        env_file = ".env"

# Экземпляр создаётся ОДИН РАЗ
settings = Settings()
