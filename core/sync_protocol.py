"""
Sync Protocol：客戶端的播放狀態調和

每個客戶端自己驅動本地播放，同時透過短輪詢收到其他人的同步事件。
這裡把「收到事件 -> 本地播放動作」寫成一個與 UI 無關的小狀態機，
方便在沒有真正播放器的情況下做單元測試。

狀態機（每次加入房間）：
    NOT_JOINED --join--> JOINED --(poll -> apply_events)*--> --leave--> NOT_JOINED

JOINED 之下還有一個「抑制」子狀態：
- 程式為了套用遠端事件而改變本地播放前，先開啟抑制
- 抑制期間，本地播放器觸發的 play/pause/seek 不回報給伺服器
- 抑制在 SUPPRESS_WINDOW 秒後自動解除

調和規則：
- 漂移修正：本地位置與事件位置相差超過 DRIFT_TOLERANCE 才 seek
- 播放/暫停：事件播放中但本地暫停 -> play；反之 -> pause；一致則不動
- 換影片：video-updated 一律換掉本地影片（新影片從 0 開始）
- 聊天：只顯示，不需要調和
"""
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol
import logging
import time

from core.event_log import EventKind

logger = logging.getLogger(__name__)

DRIFT_TOLERANCE = 1.0
SUPPRESS_WINDOW = 0.150
POLL_INTERVAL = 1.0
CHAT_DISPLAY_LIMIT = 500


class PlaybackEngine(Protocol):
    """本地播放器需要提供的介面"""

    video_url: str
    current_time: float
    paused: bool

    def load(self, url: str) -> None: ...

    def seek(self, position: float) -> None: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...


class MembershipState(str, Enum):
    NOT_JOINED = "not_joined"
    JOINED = "joined"


@dataclass(frozen=True)
class ChatLine:
    """聊天顯示的一行；author 為 None 表示系統訊息"""
    text: str
    author: Optional[str] = None

    @property
    def is_system(self) -> bool:
        return self.author is None

    def render(self) -> str:
        if self.author is None:
            return self.text
        return f"{self.author}: {self.text}"


class RoomSync:
    """
    單一客戶端的房間同步狀態

    參數：
        engine: 本地播放器
        clock: 單調時鐘（秒），用來計算抑制到期時間
        drift_tolerance: 允許的位置誤差（秒）
        suppress_window: 抑制時間（秒）
    """

    def __init__(
        self,
        engine: PlaybackEngine,
        clock: Callable[[], float] = time.monotonic,
        drift_tolerance: float = DRIFT_TOLERANCE,
        suppress_window: float = SUPPRESS_WINDOW,
        chat_limit: int = CHAT_DISPLAY_LIMIT,
    ):
        self.engine = engine
        self.drift_tolerance = drift_tolerance
        self.suppress_window = suppress_window
        self._clock = clock
        self.state = MembershipState.NOT_JOINED
        self.room_code = ""
        self.watermark = 0.0
        self.suppress_until = 0.0
        self.chat = deque(maxlen=chat_limit)

    @property
    def joined(self) -> bool:
        return self.state is MembershipState.JOINED

    # ============ 抑制子狀態 ============

    def suppress(self) -> None:
        """開啟抑制，SUPPRESS_WINDOW 秒後自動解除"""
        self.suppress_until = self._clock() + self.suppress_window

    def is_suppressing(self) -> bool:
        return self._clock() < self.suppress_until

    # ============ 房間成員狀態 ============

    def join(self, snapshot: Dict[str, Any]) -> None:
        """
        加入房間（以 GET /state 的完整狀態初始化）

        參數：
            snapshot: {roomCode, videoUrl, playerState}

        注意：
            - 已在其他房間時，先離開（watermark 歸零、清空聊天）
        """
        if self.joined:
            self.leave()

        self.room_code = snapshot["roomCode"]
        self.state = MembershipState.JOINED
        self.watermark = 0.0

        video_url = snapshot.get("videoUrl") or ""
        if video_url:
            self._load_video(video_url)
        self.apply_player_state(snapshot.get("playerState"))
        self.chat.append(ChatLine(f"Joined room {self.room_code}."))

        logger.info(f"Joined room {self.room_code}")

    def leave(self) -> None:
        """離開房間：回到 NOT_JOINED，watermark 歸零，清空聊天顯示"""
        if self.joined:
            logger.info(f"Left room {self.room_code}")
        self.state = MembershipState.NOT_JOINED
        self.room_code = ""
        self.watermark = 0.0
        self.suppress_until = 0.0
        self.chat.clear()

    # ============ 套用事件 ============

    def apply_events(self, now: float, events: Iterable[Dict[str, Any]]) -> int:
        """
        套用一次輪詢的結果

        參數：
            now: 伺服器回傳的目前時間
            events: 事件列表（wire 格式 {id, type, data, at}）

        返回：
            套用的事件數

        注意：
            - 不論有沒有事件，watermark 都前進到 now，避免空輪詢造成落後
        """
        if not self.joined:
            return 0

        count = 0
        for event in events:
            self.apply_event(event)
            count += 1
        self.watermark = now
        return count

    def apply_event(self, event: Dict[str, Any]) -> None:
        kind = event.get("type")
        data = event.get("data") or {}

        if kind == EventKind.CHAT_MESSAGE.value:
            self.chat.append(ChatLine(data.get("text", ""), author=data.get("username", "")))
        elif kind == EventKind.VIDEO_UPDATED.value:
            self._load_video(data.get("videoUrl") or "")
            self.chat.append(ChatLine(f"Video updated by {data.get('by', '')}."))
        elif kind == EventKind.PLAYER_SYNC.value:
            self.apply_player_state(data)
        else:
            logger.debug(f"Ignoring unknown event type: {kind}")

    def apply_player_state(self, state: Optional[Dict[str, Any]]) -> List[str]:
        """
        把遠端播放狀態套用到本地播放器

        返回：
            實際執行的動作（"seek" / "play" / "pause"），方便測試

        注意：
            - 還沒有影片時不做任何事
            - 動作前先開啟抑制，避免本地事件被回報成新的狀態
        """
        if not state or not self.engine.video_url:
            return []

        self.suppress()
        actions = []

        target = float(state.get("currentTime") or 0)
        if abs(self.engine.current_time - target) > self.drift_tolerance:
            self.engine.seek(target)
            actions.append("seek")

        playing = bool(state.get("isPlaying"))
        if playing and self.engine.paused:
            self.engine.play()
            actions.append("play")
        elif not playing and not self.engine.paused:
            self.engine.pause()
            actions.append("pause")

        return actions

    def local_playback_changed(self) -> Optional[Dict[str, Any]]:
        """
        本地播放器觸發 play / pause / seeked 時呼叫

        返回：
            要回報給伺服器的狀態 {currentTime, isPlaying}；
            未加入房間或抑制中時回傳 None
        """
        if not self.joined or self.is_suppressing():
            return None
        return {
            "currentTime": self.engine.current_time,
            "isPlaying": not self.engine.paused,
        }

    def _load_video(self, url: str) -> None:
        self.suppress()
        self.engine.load(url)
