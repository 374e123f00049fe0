"""
並發控制工具

提供 Room-level 的鎖定機制，防止競態條件（Race Condition）

FastAPI 會把同步 endpoint 丟到 thread pool 執行，
同一個房間的「狀態更新 + 事件寫入」必須在同一把鎖內完成。
不同房間互不影響，可以完全平行。
"""
from contextlib import contextmanager
import threading


@contextmanager
def with_room_lock(room):
    """
    鎖定一個 Room（房間級互斥鎖）

    使用場景：
    - 修改 Room 狀態時（影片、播放狀態、聊天）
    - 讀取事件時，需要確保 now 與事件列表一致

    範例：
        with with_room_lock(room):
            room.video_url = url
            room.events.append("video-updated", {...})

    參數：
        room: Room object（必須帶有 lock 屬性）

    注意：
        - 鎖不可重入，鎖內不要再呼叫會上鎖的 RoomRegistry 方法
    """
    with room.lock:
        yield room


def new_room_lock() -> threading.Lock:
    """建立一把新的房間鎖"""
    return threading.Lock()
