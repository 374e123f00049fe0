"""
Room API Endpoints - 短輪詢版

重點：
1. 所有 room endpoint 都需要登入（401 優先於其他錯誤）
2. 房間第一次被存取時自動建立，代碼不分大小寫
3. 每次變更都會寫入一筆事件，前端靠 GET /events?since=T 短輪詢取得更新
4. 房間底下不存在的路徑一律 404
"""
from fastapi import APIRouter, Depends, HTTPException, Query

import logging

from api.deps import get_current_username, get_registry
from core.exceptions import InvalidRoomCode, RoomEndpointNotFound, WatchPartyException
from core.room_registry import RoomRegistry
from schemas import (
    ChatSubmit,
    EventSchema,
    EventsResponse,
    OkResponse,
    PlayerUpdate,
    RoomStateResponse,
    VideoUpdate,
)

router = APIRouter(prefix="/api/room", tags=["rooms"])
logger = logging.getLogger(__name__)


@router.get("/{code}/state", response_model=RoomStateResponse)
def get_room_state(
    code: str,
    username: str = Depends(get_current_username),
    registry: RoomRegistry = Depends(get_registry),
):
    """
    取得房間完整狀態（加入房間時呼叫一次）

    返回：
        - roomCode: 正規化後的房間代碼
        - videoUrl: 目前影片
        - playerState: {currentTime, isPlaying, updatedAt}
    """
    try:
        room = registry.resolve(code)
        return RoomStateResponse(**registry.snapshot(room))

    except WatchPartyException as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to get room state: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{code}/video", response_model=OkResponse)
def set_video(
    code: str,
    body: VideoUpdate,
    username: str = Depends(get_current_username),
    registry: RoomRegistry = Depends(get_registry),
):
    """
    設定影片

    效果：
    - 播放狀態重置為 {0, 暫停}
    - 寫入 video-updated 事件
    """
    try:
        room = registry.resolve(code)
        registry.set_video(room, body.video_url, by=username)
        return OkResponse()

    except WatchPartyException as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to set video: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{code}/player", response_model=OkResponse)
def set_player_state(
    code: str,
    body: PlayerUpdate,
    username: str = Depends(get_current_username),
    registry: RoomRegistry = Depends(get_registry),
):
    """
    回報播放狀態（last-writer-wins）

    效果：
    - 寫入 player-sync 事件，其他客戶端下一次輪詢時調和
    """
    try:
        room = registry.resolve(code)
        registry.set_playback(room, body.current_time, body.is_playing, by=username)
        return OkResponse()

    except WatchPartyException as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to set player state: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{code}/chat", response_model=OkResponse)
def send_chat(
    code: str,
    body: ChatSubmit,
    username: str = Depends(get_current_username),
    registry: RoomRegistry = Depends(get_registry),
):
    """
    發送聊天訊息

    錯誤：
        400: 訊息為空（去除空白後）
    """
    try:
        room = registry.resolve(code)
        registry.post_chat(room, username, body.text)
        return OkResponse()

    except WatchPartyException as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to send chat: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{code}/events", response_model=EventsResponse)
def get_events(
    code: str,
    since: float = Query(0.0),
    username: str = Depends(get_current_username),
    registry: RoomRegistry = Depends(get_registry),
):
    """
    短輪詢：取得 since 之後的事件

    返回：
        - now: 伺服器時間，客戶端下一次輪詢的 since
        - events: [{id, type, data, at}]
    """
    try:
        room = registry.resolve(code)
        now, events = registry.poll(room, since)
        return EventsResponse(
            now=now,
            events=[EventSchema(**event.to_dict()) for event in events],
        )

    except WatchPartyException as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to get events: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.api_route(
    "/{path:path}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
def room_endpoint_not_found(path: str, username: str = Depends(get_current_username)):
    """
    房間底下不存在的路徑（必須最後註冊）

    - 缺少房間代碼：400
    - 其他：404
    """
    code = path.split("/", 1)[0].strip()
    error = InvalidRoomCode(code) if not code else RoomEndpointNotFound(path)
    raise HTTPException(status_code=error.status_code, detail=str(error))
