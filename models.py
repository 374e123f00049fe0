"""
ORM Models

只有帳號需要寫入資料庫；房間、聊天、事件都只存在記憶體。
"""
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String

from database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(64), unique=True, nullable=False, index=True)
    password_hash = Column(String(256), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    def __repr__(self):
        return f"<User {self.username}>"
