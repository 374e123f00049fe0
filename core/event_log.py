"""
Event Log：每個房間一份、有上限、只能追加的事件緩衝區

客戶端透過短輪詢 GET /events?since=T 取得 T 之後的事件。

規則：
- 事件依寫入順序排列，occurred_at 嚴格遞增
- 超過上限時丟棄最舊的事件（輪詢太慢的客戶端會漏掉事件，這是既定行為）
- 事件 id 為房間內遞增的整數
"""
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
import itertools
import time

DEFAULT_EVENT_LIMIT = 300

# 同一毫秒內的多次取號，往後推一點點，保證嚴格遞增
_TICK = 0.001


def now_ms() -> float:
    """目前時間（epoch 毫秒）"""
    return time.time() * 1000


class EventKind(str, Enum):
    VIDEO_UPDATED = "video-updated"
    PLAYER_SYNC = "player-sync"
    CHAT_MESSAGE = "chat-message"


@dataclass(frozen=True)
class Event:
    id: int
    kind: EventKind
    payload: Dict[str, Any] = field(default_factory=dict)
    occurred_at: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.kind.value,
            "data": dict(self.payload),
            "at": self.occurred_at,
        }


class EventLog:
    """
    有上限的事件緩衝區

    同時也是房間的邏輯時鐘：stamp() 發出的時間戳記嚴格遞增，
    事件時間、播放狀態 updatedAt、輪詢回傳的 now 都從這裡取號。
    因此在某次輪詢取得 now 之後才寫入的事件，一定會出現在
    下一次 since=now 的結果裡。

    注意：
        - 本身不上鎖，呼叫者（RoomRegistry）負責在房間鎖內操作
    """

    def __init__(self, limit: int = DEFAULT_EVENT_LIMIT,
                 clock: Optional[Callable[[], float]] = None):
        if limit < 1:
            raise ValueError(f"Event log limit must be positive, got {limit}")
        self.limit = limit
        self._clock = clock or now_ms
        self._events = deque(maxlen=limit)
        self._ids = itertools.count(1)
        self._last_stamp = 0.0

    def __len__(self) -> int:
        return len(self._events)

    def stamp(self) -> float:
        """取得下一個時間戳記（嚴格大於之前發出的任何一個）"""
        stamp = max(self._clock(), self._last_stamp + _TICK)
        self._last_stamp = stamp
        return stamp

    def append(self, kind: EventKind, payload: Dict[str, Any]) -> Event:
        """
        追加一筆事件

        參數：
            kind: 事件種類
            payload: 事件內容（依種類不同）

        返回：
            新建立的 Event

        注意：
            - 超過上限時，deque 會自動丟掉最舊的事件
        """
        event = Event(
            id=next(self._ids),
            kind=EventKind(kind),
            payload=dict(payload),
            occurred_at=self.stamp(),
        )
        self._events.append(event)
        return event

    def since(self, watermark: float) -> List[Event]:
        """
        取得 occurred_at 嚴格大於 watermark 的所有事件（依寫入順序）

        參數：
            watermark: 客戶端上次看到的時間點（毫秒）

        返回：
            Event 列表
        """
        return [event for event in self._events if event.occurred_at > watermark]

    def all(self) -> List[Event]:
        return list(self._events)
