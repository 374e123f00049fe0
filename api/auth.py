"""
Auth API Endpoints

職責：
1. 註冊帳號
2. 登入（發 session token）
3. 查詢目前使用者
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from api.deps import get_current_username, get_identity
from core.exceptions import WatchPartyException
from core.identity import IdentityProvider
from database import get_db, get_settings
from schemas import Credentials, LoginResponse, MeResponse, MessageResponse
from services.user_service import authenticate, register_user

router = APIRouter(prefix="/api", tags=["auth"])
logger = logging.getLogger(__name__)


@router.post("/register", response_model=MessageResponse, status_code=201)
def register(credentials: Credentials, db: Session = Depends(get_db)):
    """
    註冊帳號

    返回：
        201 {message}

    錯誤：
        400: 帳號或密碼缺少、密碼太短
        409: 帳號已存在
    """
    try:
        register_user(
            db,
            credentials.username,
            credentials.password,
            min_password_length=get_settings().min_password_length,
        )
        return MessageResponse(message="Account created")

    except WatchPartyException as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to register: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/login", response_model=LoginResponse)
def login(
    credentials: Credentials,
    db: Session = Depends(get_db),
    identity: IdentityProvider = Depends(get_identity),
):
    """
    登入

    返回：
        200 {token, username}（username 為註冊時的大小寫）

    錯誤：
        401: 帳號或密碼錯誤
    """
    try:
        user = authenticate(db, credentials.username, credentials.password)
        session = identity.issue(user.username)
        return LoginResponse(token=session.token, username=user.username)

    except WatchPartyException as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to login: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/me", response_model=MeResponse)
def me(username: str = Depends(get_current_username)):
    return MeResponse(username=username)
