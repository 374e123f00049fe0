"""
Watch Party HTTP API 的 async client

共用一個 httpx.AsyncClient，登入後保存 session token，
之後每個房間請求都帶 Authorization: Bearer <token>。
測試時傳入 transport=httpx.ASGITransport(app=app) 直接打行程內的 app。
"""
from typing import Any, Dict, Optional
import logging

import httpx

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """API 回傳非 2xx"""

    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"{status_code}: {detail}")


class WatchPartyClient:
    """Watch Party API client"""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self.username: Optional[str] = None
        self._http = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def close(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "WatchPartyClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ============ Internal ============

    def _headers(self) -> Dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """
        送出請求並解析 JSON

        異常：
            ApiError: 非 2xx 回應
            httpx.HTTPError: 連線失敗、逾時
        """
        resp = await self._http.request(method, path, headers=self._headers(), **kwargs)
        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        if resp.is_error:
            raise ApiError(resp.status_code, data.get("detail") or "Request failed")
        return data

    # ============ Auth ============

    async def register(self, username: str, password: str) -> str:
        data = await self._request(
            "POST", "/api/register", json={"username": username, "password": password}
        )
        return data["message"]

    async def login(self, username: str, password: str) -> str:
        """
        登入並保存 token

        返回：
            伺服器上的 username（保留註冊時的大小寫）
        """
        data = await self._request(
            "POST", "/api/login", json={"username": username, "password": password}
        )
        self.token = data["token"]
        self.username = data["username"]
        return self.username

    async def me(self) -> str:
        data = await self._request("GET", "/api/me")
        return data["username"]

    # ============ Rooms ============

    async def room_state(self, room_code: str) -> Dict[str, Any]:
        return await self._request("GET", f"/api/room/{room_code}/state")

    async def set_video(self, room_code: str, video_url: str) -> None:
        await self._request("POST", f"/api/room/{room_code}/video", json={"videoUrl": video_url})

    async def push_player_state(self, room_code: str, current_time: float, is_playing: bool) -> None:
        await self._request(
            "POST",
            f"/api/room/{room_code}/player",
            json={"currentTime": current_time, "isPlaying": is_playing},
        )

    async def send_chat(self, room_code: str, text: str) -> None:
        await self._request("POST", f"/api/room/{room_code}/chat", json={"text": text})

    async def events(self, room_code: str, since: float) -> Dict[str, Any]:
        """取得 since 之後的事件，回傳 {"now": ..., "events": [...]}"""
        return await self._request("GET", f"/api/room/{room_code}/events", params={"since": since})
