"""
领域事件定义 (Domain Events)
预订生命周期在事务提交后发布的业务事件
"""
from enum import Enum
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Optional, Dict, Any


def utc_now() -> datetime:
    """不带时区的当前 UTC 时间，与库中存储的入住/离店时间一致"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class EventType(str, Enum):
    """事件类型枚举"""
    # 房间相关
    ROOM_STATUS_CHANGED = "room.status_changed"

    # 预订相关
    BOOKING_CREATED = "booking.created"
    BOOKING_UPDATED = "booking.updated"
    BOOKING_CHECKED_IN = "booking.checked_in"
    BOOKING_CHECKED_OUT = "booking.checked_out"
    BOOKING_CANCELLED = "booking.cancelled"
    BOOKING_NO_SHOW = "booking.no_show"


@dataclass
class BaseEventData:
    """事件数据基类"""
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        result = asdict(self)
        # 处理 datetime 序列化
        for key, value in result.items():
            if isinstance(value, datetime):
                result[key] = value.isoformat()
        return result


@dataclass
class RoomStatusChangedData(BaseEventData):
    """房间状态变更事件数据"""
    room_id: int = 0
    room_number: str = ""
    old_status: str = ""
    new_status: str = ""
    changed_by: Optional[int] = None
    reason: str = ""


@dataclass
class BookingEventData(BaseEventData):
    """预订事件数据（创建、修改、入住、退房、取消、未到共用）"""
    booking_id: int = 0
    booking_number: str = ""
    guest_id: int = 0
    room_id: int = 0
    room_number: str = ""
    old_status: str = ""
    new_status: str = ""
    check_in_date: str = ""
    check_out_date: str = ""
    total_amount: float = 0.0
    operator_id: Optional[int] = None
    reason: str = ""
