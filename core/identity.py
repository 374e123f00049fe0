"""
Identity Provider：Bearer token -> username

登入成功後發 token，token 在 session_ttl 秒後過期。
Session 只存在記憶體（重啟後需重新登入）。
"""
from dataclasses import dataclass
from typing import Callable, Optional
import logging
import secrets
import threading
import time

from cachetools import TTLCache

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL = 60 * 60 * 12
MAX_SESSIONS = 100_000


@dataclass(frozen=True)
class Session:
    token: str
    username: str
    expires_at: float


class IdentityProvider:
    """
    Session 管理

    參數：
        ttl: token 有效秒數
        timer: 時間來源（測試時可注入假時鐘）
    """

    def __init__(self, ttl: float = DEFAULT_SESSION_TTL,
                 timer: Callable[[], float] = time.monotonic,
                 maxsize: int = MAX_SESSIONS):
        self.ttl = ttl
        self._timer = timer
        self._sessions: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)
        self._lock = threading.Lock()

    def issue(self, username: str) -> Session:
        """為使用者建立新的 session"""
        session = Session(
            token=secrets.token_hex(24),
            username=username,
            expires_at=self._timer() + self.ttl,
        )
        with self._lock:
            self._sessions[session.token] = session
        logger.info(f"Issued session for {username}")
        return session

    def resolve(self, token: Optional[str]) -> Optional[str]:
        """
        解析 token

        返回：
            username；token 不存在或已過期時回傳 None
        """
        if not token:
            return None
        with self._lock:
            session = self._sessions.get(token)
        if session is None or session.expires_at <= self._timer():
            return None
        return session.username


def extract_bearer_token(header: Optional[str]) -> Optional[str]:
    """從 Authorization header 取出 Bearer token"""
    if not header or not header.startswith("Bearer "):
        return None
    return header[len("Bearer "):].strip() or None
