"""
错误类型
存储损坏在最底层静默恢复；认证错误以返回值形式交给调用方；
网络/权限/连接错误作为可恢复的异常抛给接口层。
"""

from enum import Enum


class LuminaError(Exception):
    """所有业务错误的基类"""

    message = "Something went wrong."

    def __init__(self, message: str = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class AuthError(Enum):
    """认证失败原因（作为结果返回，不作为异常抛出）"""
    NOT_FOUND = "not_found"
    NAME_TAKEN = "name_taken"
    WEAK_CODE = "weak_code"

    @property
    def message(self) -> str:
        return _AUTH_MESSAGES[self]


_AUTH_MESSAGES = {
    AuthError.NOT_FOUND: "Could not find a student with that Name and Secret Code. Please check your spelling!",
    AuthError.NAME_TAKEN: "That name is already being used by another student! Try adding your last initial (e.g. 'Charlie B').",
    AuthError.WEAK_CODE: "Your secret code needs to be at least 3 characters long.",
}


class ValidationError(LuminaError):
    """必填字段为空"""
    message = "A required field is empty."


class StorageError(LuminaError):
    """持久化的JSON损坏，仅在存储层内部使用"""
    message = "Stored data is corrupt."


class NetworkError(LuminaError):
    """生成式接口或实时接口调用失败，可重试"""
    message = "Oops! Something went wrong. Please check your connection and try again."


class PermissionDenied(LuminaError):
    """麦克风权限被拒绝"""
    message = "Could not access microphone. Please check permissions."


class ConnectionInterrupted(LuminaError):
    """实时会话传输中断"""
    message = "Connection error. Please try again."
