"""
核心業務邏輯層

這個 package 包含所有核心業務邏輯，包括：
- Room Registry：管理房間狀態與生命週期
- Event Log：每個房間的有上限事件紀錄
- Sync Protocol：客戶端播放狀態調和（狀態機）
- Identity：session token 管理
- Locks：並發控制工具
"""
