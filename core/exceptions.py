"""
自定義異常類別

集中管理所有業務邏輯異常，方便 API 層統一處理。
每個異常類別帶有 status_code，API 層直接轉成 HTTPException。
"""


class WatchPartyException(Exception):
    """所有業務異常的基類"""
    status_code = 500


# ============ 分類（對應 HTTP 狀態碼） ============

class ValidationError(WatchPartyException):
    """輸入資料不合法"""
    status_code = 400


class AuthError(WatchPartyException):
    """Token 缺少、無效或已過期"""
    status_code = 401


class NotFoundError(WatchPartyException):
    """找不到資源"""
    status_code = 404


class ConflictError(WatchPartyException):
    """資源衝突（例如重複註冊）"""
    status_code = 409


# ============ Room 相關異常 ============

class InvalidRoomCode(ValidationError):
    """房間代碼為空"""
    def __init__(self, code=""):
        self.code = code
        super().__init__("Invalid room code")


class EmptyMessage(ValidationError):
    """聊天訊息去除空白後為空"""
    def __init__(self):
        super().__init__("Message is empty")


class RoomEndpointNotFound(NotFoundError):
    """房間底下不存在的路徑"""
    def __init__(self, path):
        self.path = path
        super().__init__("Room endpoint not found")


# ============ User 相關異常 ============

class InvalidRegistration(ValidationError):
    """註冊資料不完整（帳號或密碼太短）"""
    pass


class UsernameTaken(ConflictError):
    """帳號已存在（不分大小寫）"""
    def __init__(self, username):
        self.username = username
        super().__init__("Username already exists")


class InvalidCredentials(AuthError):
    """帳號或密碼錯誤"""
    def __init__(self):
        super().__init__("Invalid credentials")


class InvalidToken(AuthError):
    """Bearer token 無法解析成使用者"""
    def __init__(self):
        super().__init__("Invalid token")
