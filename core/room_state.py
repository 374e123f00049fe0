"""
Room 的記憶體內資料結構

房間只存在於行程生命週期內，不寫入資料庫。
所有狀態變更都經過 RoomRegistry，這裡只定義資料。
"""
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from core.event_log import DEFAULT_EVENT_LIMIT, EventLog
from core.locks import new_room_lock

DEFAULT_CHAT_LIMIT = 500


@dataclass(frozen=True)
class PlayerState:
    """播放狀態：位置（秒）、是否播放中、最後更新時間（毫秒）"""
    current_time: float = 0.0
    is_playing: bool = False
    updated_at: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currentTime": self.current_time,
            "isPlaying": self.is_playing,
            "updatedAt": self.updated_at,
        }


@dataclass(frozen=True)
class ChatMessage:
    """聊天訊息，寫入後不可修改"""
    id: int
    username: str
    text: str
    timestamp: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "text": self.text,
            "timestamp": self.timestamp,
        }


@dataclass(eq=False)
class Room:
    """
    單一房間

    欄位：
        code: 正規化後的房間代碼（大寫）
        video_url: 目前影片（空字串表示尚未設定）
        player_state: 最後一次的播放狀態
        chat: 聊天紀錄（上限 chat_limit，超過丟最舊）
        events: 事件紀錄（上限 event_limit）
    """
    code: str
    event_limit: int = DEFAULT_EVENT_LIMIT
    chat_limit: int = DEFAULT_CHAT_LIMIT
    clock: Optional[Any] = None
    video_url: str = ""
    player_state: PlayerState = field(init=False)
    chat: deque = field(init=False)
    events: EventLog = field(init=False)
    lock: Any = field(init=False, repr=False)

    def __post_init__(self):
        self.events = EventLog(limit=self.event_limit, clock=self.clock)
        self.chat = deque(maxlen=self.chat_limit)
        self.lock = new_room_lock()
        self.player_state = PlayerState(updated_at=self.events.stamp())
        self._chat_ids = 0

    def next_chat_id(self) -> int:
        self._chat_ids += 1
        return self._chat_ids

    def snapshot(self) -> Dict[str, Any]:
        """GET /state 的回應內容"""
        return {
            "roomCode": self.code,
            "videoUrl": self.video_url,
            "playerState": self.player_state.to_dict(),
        }
