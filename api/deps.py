"""
FastAPI dependencies

RoomRegistry 與 IdentityProvider 由 app 建立並掛在 app.state，
endpoint 透過 Depends 取得，測試時每個 app 都有獨立的 registry。
"""
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from core.exceptions import InvalidToken
from core.identity import IdentityProvider, extract_bearer_token
from core.room_registry import RoomRegistry


def get_registry(request: Request) -> RoomRegistry:
    return request.app.state.registry


def get_identity(request: Request) -> IdentityProvider:
    return request.app.state.identity


def get_current_username(
    authorization: Optional[str] = Header(None),
    identity: IdentityProvider = Depends(get_identity),
) -> str:
    """
    驗證 Bearer token，回傳 username

    異常：
        HTTPException 401: token 缺少、無效或已過期
    """
    username = identity.resolve(extract_bearer_token(authorization))
    if not username:
        error = InvalidToken()
        raise HTTPException(status_code=error.status_code, detail=str(error))
    return username
