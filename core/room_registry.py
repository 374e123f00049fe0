"""
Room Registry：管理所有房間的狀態與事件

職責：
1. 解析房間代碼（不分大小寫），第一次使用時自動建立房間
2. 設定影片（重置播放狀態）
3. 同步播放狀態
4. 發送聊天訊息
5. 提供「某時間點之後的事件」給短輪詢

原則：
- 所有變更都是整筆覆寫（last-writer-wins），不做合併
- 狀態更新與事件寫入在同一把房間鎖內完成
- Registry 由 app 明確持有並注入，不是隱藏的全域變數
"""
from typing import Callable, Dict, List, Optional, Tuple
import logging
import math
import threading

from core.event_log import DEFAULT_EVENT_LIMIT, Event, EventKind
from core.exceptions import EmptyMessage, InvalidRoomCode
from core.locks import with_room_lock
from core.room_state import DEFAULT_CHAT_LIMIT, ChatMessage, PlayerState, Room

logger = logging.getLogger(__name__)


def normalize_room_code(code: Optional[str]) -> str:
    """
    正規化房間代碼

    範例：
        " abc " -> "ABC"

    異常：
        InvalidRoomCode: 代碼為空
    """
    normalized = str(code or "").strip().upper()
    if not normalized:
        raise InvalidRoomCode(code or "")
    return normalized


def _clean_position(position) -> float:
    """播放位置：非數字或非有限值當成 0，負數夾到 0"""
    try:
        value = float(position or 0)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return max(value, 0.0)


class RoomRegistry:
    """房間管理器（行程內、記憶體）"""

    def __init__(
        self,
        event_limit: int = DEFAULT_EVENT_LIMIT,
        chat_limit: int = DEFAULT_CHAT_LIMIT,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.event_limit = event_limit
        self.chat_limit = chat_limit
        self._clock = clock
        self._rooms: Dict[str, Room] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._rooms)

    def resolve(self, code: str) -> Room:
        """
        取得房間，不存在時建立

        參數：
            code: 房間代碼（不分大小寫）

        返回：
            Room object（同一個代碼永遠回傳同一個 instance）

        異常：
            InvalidRoomCode: 代碼為空

        注意：
            - 房間永遠不會被刪除（沒有閒置回收）
        """
        key = normalize_room_code(code)
        room = self._rooms.get(key)
        if room is not None:
            return room

        with self._lock:
            # 取鎖後再檢查一次，避免兩個請求同時建立
            room = self._rooms.get(key)
            if room is None:
                room = Room(
                    code=key,
                    event_limit=self.event_limit,
                    chat_limit=self.chat_limit,
                    clock=self._clock,
                )
                self._rooms[key] = room
                logger.info(f"Created room {key}")
        return room

    def snapshot(self, room: Room) -> dict:
        with with_room_lock(room):
            return room.snapshot()

    def set_video(self, room: Room, reference: str, by: str) -> Event:
        """
        設定房間影片

        效果：
        - video_url 覆寫
        - 播放狀態重置為 {0, 暫停}
        - 寫入 video-updated 事件

        參數：
            room: Room object
            reference: 影片網址（空字串表示清除）
            by: 操作者 username

        返回：
            寫入的 Event
        """
        video_url = str(reference or "").strip()
        with with_room_lock(room):
            room.video_url = video_url
            room.player_state = PlayerState(updated_at=room.events.stamp())
            event = room.events.append(
                EventKind.VIDEO_UPDATED,
                {"videoUrl": video_url, "by": by},
            )

        logger.info(f"Room {room.code} video set by {by}: {video_url or '<none>'}")
        return event

    def set_playback(self, room: Room, position, playing, by: str) -> Event:
        """
        同步播放狀態（整筆覆寫）

        參數：
            room: Room object
            position: 播放位置（秒），負數夾到 0
            playing: 是否播放中（轉成 bool）
            by: 操作者 username

        返回：
            寫入的 player-sync Event
        """
        current_time = _clean_position(position)
        is_playing = bool(playing)
        with with_room_lock(room):
            state = PlayerState(
                current_time=current_time,
                is_playing=is_playing,
                updated_at=room.events.stamp(),
            )
            room.player_state = state
            payload = state.to_dict()
            payload["by"] = by
            event = room.events.append(EventKind.PLAYER_SYNC, payload)

        logger.debug(
            f"Room {room.code} playback by {by}: "
            f"{current_time:.2f}s {'playing' if is_playing else 'paused'}"
        )
        return event

    def post_chat(self, room: Room, author: str, text: str) -> ChatMessage:
        """
        發送聊天訊息

        參數：
            room: Room object
            author: 發送者 username
            text: 訊息內容（會去除前後空白）

        返回：
            ChatMessage

        異常：
            EmptyMessage: 去除空白後為空（不寫入任何東西）
        """
        message_text = str(text or "").strip()
        if not message_text:
            raise EmptyMessage()

        with with_room_lock(room):
            message = ChatMessage(
                id=room.next_chat_id(),
                username=author,
                text=message_text,
                timestamp=room.events.stamp(),
            )
            room.chat.append(message)
            room.events.append(EventKind.CHAT_MESSAGE, message.to_dict())

        return message

    def poll(self, room: Room, since: float) -> Tuple[float, List[Event]]:
        """
        短輪詢：取得 since 之後的事件與伺服器目前時間

        返回：
            (now, events)，客戶端下一次應以 now 作為 since

        注意：
            - now 在房間鎖內取號，之後寫入的事件時間一定大於 now
        """
        with with_room_lock(room):
            events = room.events.since(since)
            now = room.events.stamp()
        return now, events
