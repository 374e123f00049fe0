"""
Pydantic schemas：API 的請求與回應格式

JSON 欄位使用 camelCase（與前端一致），Python 端使用 snake_case。
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ============ Auth ============

class Credentials(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


class LoginResponse(BaseModel):
    token: str
    username: str


class MeResponse(BaseModel):
    username: str


# ============ Room 請求 ============

class VideoUpdate(CamelModel):
    video_url: Optional[str] = Field("", alias="videoUrl")


class PlayerUpdate(CamelModel):
    current_time: Optional[float] = Field(0.0, alias="currentTime")
    # 任何 JSON 值都接受，由 set_playback 以 bool() 轉換
    is_playing: Any = Field(False, alias="isPlaying")


class ChatSubmit(BaseModel):
    text: Optional[str] = None


# ============ Room 回應 ============

class OkResponse(BaseModel):
    ok: bool = True


class PlayerStateSchema(CamelModel):
    current_time: float = Field(alias="currentTime")
    is_playing: bool = Field(alias="isPlaying")
    updated_at: float = Field(alias="updatedAt")


class RoomStateResponse(CamelModel):
    room_code: str = Field(alias="roomCode")
    video_url: str = Field(alias="videoUrl")
    player_state: PlayerStateSchema = Field(alias="playerState")


class EventSchema(BaseModel):
    id: int
    type: str
    data: Dict[str, Any]
    at: float


class EventsResponse(BaseModel):
    now: float
    events: List[EventSchema]
