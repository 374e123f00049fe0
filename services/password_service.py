"""
密碼雜湊服務

PBKDF2-HMAC-SHA512 加鹽，存成 salt:hash（皆為 hex）。
純計算，不存取資料庫。
"""
from typing import Optional
import hashlib
import hmac
import secrets

ITERATIONS = 100_000
KEY_LENGTH = 64


def _derive(password: str, salt: str) -> str:
    return hashlib.pbkdf2_hmac(
        "sha512", password.encode("utf-8"), salt.encode("utf-8"), ITERATIONS, KEY_LENGTH
    ).hex()


def hash_password(password: str, salt: Optional[str] = None) -> str:
    """
    雜湊密碼

    參數：
        password: 明文密碼
        salt: 沒給時隨機產生

    返回：
        salt:hash 字串
    """
    salt = salt or secrets.token_hex(16)
    return f"{salt}:{_derive(password, salt)}"


def verify_password(password: str, stored: Optional[str]) -> bool:
    """以固定時間比對密碼與 salt:hash"""
    salt, _, digest = str(stored or "").partition(":")
    if not salt or not digest:
        return False
    return hmac.compare_digest(_derive(password, salt), digest)
