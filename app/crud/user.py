import logging

from sqlalchemy.orm import Session
from app.db.models.user import User
from app.core.security import get_password_hash

logger = logging.getLogger(__name__)


def get_user_by_email(db: Session, email: str):
    return db.query(User).filter(User.email == email).first()


def create_user(db: Session, user_data):
    db_user = User(
        email=user_data.email,
        hashed_password=get_password_hash(user_data.password),
        full_name=user_data.full_name,
        role=user_data.role,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


def ensure_admin(db: Session, email: str, password: str, full_name: str):
    """Создаёт администратора, если пользователя с таким email ещё нет."""
    user = get_user_by_email(db, email)
    if user:
        if user.role != "admin":
            logger.warning(f"⚠️ {email} уже зарегистрирован с ролью {user.role}, администратор не создан")
        return user

    user = User(
        email=email,
        hashed_password=get_password_hash(password),
        full_name=full_name,
        role="admin",
        is_verified=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"👤 Создан администратор {email}")
    return user
