"""
帳號服務：註冊與登入驗證

帳號比對一律不分大小寫，但保留使用者註冊時的大小寫。
"""
from typing import Optional
import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.exceptions import InvalidCredentials, InvalidRegistration, UsernameTaken
from database import transactional
from models import User
from services.password_service import hash_password, verify_password

logger = logging.getLogger(__name__)


def find_user(db: Session, username: str) -> Optional[User]:
    """不分大小寫查詢帳號"""
    return db.query(User).filter(
        func.lower(User.username) == str(username).lower()
    ).first()


@transactional
def register_user(db: Session, username: Optional[str], password: Optional[str],
                  min_password_length: int = 4) -> User:
    """
    註冊新帳號

    參數：
        db: SQLAlchemy Session
        username: 帳號
        password: 密碼（至少 min_password_length 個字元）

    返回：
        新建立的 User

    異常：
        InvalidRegistration: 帳號或密碼缺少、密碼太短
        UsernameTaken: 帳號已存在
    """
    username = str(username or "").strip()
    password = str(password or "")
    if not username or len(password) < min_password_length:
        raise InvalidRegistration(
            f"Username and password (min {min_password_length} characters) are required"
        )

    if find_user(db, username):
        raise UsernameTaken(username)

    user = User(username=username, password_hash=hash_password(password))
    db.add(user)
    try:
        db.flush()
    except IntegrityError:
        # 同時註冊同一個帳號，由 unique constraint 擋下
        raise UsernameTaken(username)

    logger.info(f"Registered user {username}")
    return user


def authenticate(db: Session, username: Optional[str], password: Optional[str]) -> User:
    """
    驗證帳號密碼

    異常：
        InvalidCredentials: 帳號不存在或密碼錯誤
    """
    user = find_user(db, username or "")
    if not user or not verify_password(str(password or ""), user.password_hash):
        logger.warning(f"Failed login attempt for {username!r}")
        raise InvalidCredentials()
    return user
