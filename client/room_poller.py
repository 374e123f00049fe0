"""
Room Poller：用 asyncio 短輪詢讓本地播放器跟房間保持同步

每個加入的房間只有一個 polling task，每 interval 秒向伺服器
拿 watermark 之後的事件，交給 RoomSync 調和。

失敗處理：
- 輪詢失敗只記 log，下一輪重試（polling task 不會因此停止）
- 播放狀態回報是 best-effort，失敗直接丟棄
- join / chat / 換影片失敗會拋給呼叫端

換房間：
- 舊房間的 polling task 一律取消，watermark 歸零
- 多個 join 重疊時，以最後一次呼叫的房間為準
"""
from typing import Optional
import asyncio
import contextlib
import logging

import httpx

from client.api_client import ApiError, WatchPartyClient
from core.sync_protocol import POLL_INTERVAL, PlaybackEngine, RoomSync

logger = logging.getLogger(__name__)

# 下一輪輪詢就能恢復的錯誤
_TRANSIENT_ERRORS = (httpx.HTTPError, ApiError)


class RoomPoller:
    """房間輪詢器（一個客戶端一個）"""

    def __init__(
        self,
        api: WatchPartyClient,
        engine: PlaybackEngine,
        interval: float = POLL_INTERVAL,
        sync: Optional[RoomSync] = None,
    ):
        self.api = api
        self.sync = sync or RoomSync(engine)
        self.interval = interval
        self._task: Optional[asyncio.Task] = None
        self._join_seq = 0

    @property
    def room_code(self) -> str:
        return self.sync.room_code

    @property
    def polling(self) -> bool:
        return self._task is not None and not self._task.done()

    async def join(self, room_code: str) -> bool:
        """
        加入房間：離開目前房間、取得完整狀態、開始輪詢

        參數：
            room_code: 房間代碼（不分大小寫）

        返回：
            True 表示已加入；被後來的 join / leave 取代時回傳 False

        異常：
            ValueError: 房間代碼為空
            ApiError / httpx.HTTPError: 取得房間狀態失敗
        """
        code = room_code.strip().upper()
        if not code:
            raise ValueError("Room code is required")

        await self.leave()
        seq = self._join_seq
        snapshot = await self.api.room_state(code)
        if seq != self._join_seq:
            logger.debug(f"Join {code} superseded while fetching state")
            return False

        self._cancel_task()
        self.sync.join(snapshot)
        self._task = asyncio.create_task(self._run())
        return True

    async def leave(self) -> None:
        """取消 polling task 並離開房間"""
        self._join_seq += 1
        task = self._cancel_task()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self.sync.leave()

    async def poll_once(self) -> int:
        """
        執行一次輪詢

        返回：
            套用的事件數；失敗或房間已切換時為 0
        """
        if not self.sync.joined:
            return 0

        code = self.sync.room_code
        try:
            data = await self.api.events(code, self.sync.watermark)
        except _TRANSIENT_ERRORS as e:
            logger.debug(f"Poll failed for room {code}, retrying next tick: {e}")
            return 0

        if self.sync.room_code != code:
            # 請求途中換了房間
            return 0
        return self.sync.apply_events(data["now"], data["events"])

    async def report_playback(self) -> bool:
        """
        使用者操作 play / pause / seek 後回報本地播放狀態

        返回：
            是否有送出（抑制中、未加入或送出失敗都回傳 False）
        """
        report = self.sync.local_playback_changed()
        if report is None:
            return False

        try:
            await self.api.push_player_state(
                self.sync.room_code, report["currentTime"], report["isPlaying"]
            )
        except _TRANSIENT_ERRORS as e:
            logger.debug(f"Dropped playback report for room {self.sync.room_code}: {e}")
            return False
        return True

    async def set_video(self, video_url: str) -> None:
        if self.sync.joined:
            await self.api.set_video(self.sync.room_code, video_url.strip())

    async def send_chat(self, text: str) -> None:
        text = text.strip()
        if self.sync.joined and text:
            await self.api.send_chat(self.sync.room_code, text)

    def _cancel_task(self) -> Optional[asyncio.Task]:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
        return task

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.poll_once()
            except Exception as e:
                # 回應格式不對等非預期錯誤也只跳過這一輪
                logger.warning(f"Poll error in room {self.sync.room_code}: {e}", exc_info=True)
