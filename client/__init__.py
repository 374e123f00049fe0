"""
客戶端

這個 package 包含 Watch Party API 的 Python client：
- WatchPartyClient：HTTP API 包裝（httpx）
- RoomPoller：asyncio 短輪詢，讓本地播放器跟房間同步
"""
