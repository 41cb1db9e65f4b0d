"""
业务异常定义
所有异常都继承自 ValueError，调用方可按类型映射为 HTTP 状态码
"""
from typing import Any, Dict, Optional


class BookingError(ValueError):
    """业务异常基类"""

    status_code: int = 400
    default_message: str = "Request could not be processed"

    def __init__(self, message: Optional[str] = None, **context: Any):
        self.message = message or self.default_message
        self.context: Dict[str, Any] = context
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "message": self.message}


class ValidationError(BookingError):
    """输入格式错误、缺失字段、日期顺序错误"""
    default_message = "Validation error"


class NotFound(BookingError):
    """客人/房间/预订不存在"""
    status_code = 404
    default_message = "Resource not found"


class Conflict(BookingError):
    """预订日期冲突或唯一键冲突"""
    default_message = "Room is not available for the selected dates"


class InvalidTransition(BookingError):
    """当前状态不允许执行该生命周期操作"""
    default_message = "Invalid booking status transition"


class InvalidModification(BookingError):
    """终态预订不可修改"""
    default_message = "Cannot modify a booking that is checked-out or cancelled"


class AccessDenied(BookingError):
    """公开渠道身份校验失败"""
    status_code = 403
    default_message = "Access denied"
