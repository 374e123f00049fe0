"""
服務層

這個 package 包含帳號相關的邏輯，不負責房間狀態：
- PasswordService：密碼雜湊與驗證
- UserService：註冊與登入驗證
"""
