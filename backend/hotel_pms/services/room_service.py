"""
房间服务 - 房间目录
管理 Room 对象：增删改查、房态变更、可用房间搜索
房态变更时发布 room.status_changed 事件
"""
from typing import List, Optional, Callable
from datetime import datetime
import logging
from sqlalchemy.orm import Session
from hotel_pms.exceptions import NotFound, Conflict, ValidationError
from hotel_pms.models.ontology import (
    Room, RoomStatus, RoomType, Booking, BookingStatus
)
from hotel_pms.models.schemas import RoomCreate, RoomUpdate
from hotel_pms.models.events import EventType, RoomStatusChangedData
from hotel_pms.services.event_bus import event_bus, Event
from hotel_pms.services.booking_repository import BookingRepository

logger = logging.getLogger(__name__)

# 可用房间搜索时排除的房态
UNBOOKABLE_ROOM_STATUSES = (RoomStatus.MAINTENANCE, RoomStatus.OUT_OF_ORDER)


def change_room_status(room: Room, new_status: RoomStatus,
                       changed_by: Optional[int] = None, reason: str = "") -> Optional[Event]:
    """
    修改房态但不提交

    返回待发布的事件（状态未变化时返回 None），由调用方在提交成功后发布
    """
    old_status = room.status
    if old_status == new_status:
        return None
    room.status = new_status
    logger.info("Room %s status %s -> %s (%s)", room.room_number,
                old_status.value if old_status else None, new_status.value, reason or "manual")
    return Event.build(
        EventType.ROOM_STATUS_CHANGED,
        RoomStatusChangedData(
            room_id=room.id,
            room_number=room.room_number,
            old_status=old_status.value if old_status else "",
            new_status=new_status.value,
            changed_by=changed_by,
            reason=reason
        ),
        source="room_service"
    )


class RoomService:
    """房间服务"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None):
        self.db = db
        # 支持依赖注入事件发布器，便于测试
        self._publish_event = event_publisher or event_bus.publish

    def get_rooms(self, status: Optional[RoomStatus] = None,
                  room_type: Optional[RoomType] = None,
                  floor: Optional[int] = None,
                  is_active: Optional[bool] = True) -> List[Room]:
        """获取房间列表"""
        query = self.db.query(Room)

        if status is not None:
            query = query.filter(Room.status == status)
        if room_type is not None:
            query = query.filter(Room.room_type == room_type)
        if floor is not None:
            query = query.filter(Room.floor == floor)
        if is_active is not None:
            query = query.filter(Room.is_active == is_active)

        return query.order_by(Room.floor, Room.room_number).all()

    def get_room(self, room_id: int) -> Optional[Room]:
        return self.db.query(Room).filter(Room.id == room_id).first()

    def get_room_by_number(self, room_number: str) -> Optional[Room]:
        return self.db.query(Room).filter(Room.room_number == room_number).first()

    def require_room(self, room_id: int) -> Room:
        room = self.get_room(room_id)
        if not room:
            raise NotFound("Room not found", room_id=room_id)
        return room

    def create_room(self, data: RoomCreate) -> Room:
        """创建房间，房间号唯一"""
        if self.get_room_by_number(data.room_number):
            raise Conflict(f"Room number {data.room_number} already exists")

        room = Room(**data.model_dump())
        self.db.add(room)
        self.db.commit()
        self.db.refresh(room)
        logger.info("Room %s created", room.room_number)
        return room

    def update_room(self, room_id: int, data: RoomUpdate) -> Room:
        """
        更新房间
        调整房价只影响之后的新预订，已有预订保留创建时的房价快照
        """
        room = self.require_room(room_id)

        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(room, key, value)

        self.db.commit()
        self.db.refresh(room)
        return room

    def update_room_status(self, room_id: int, status: RoomStatus,
                           changed_by: Optional[int] = None, reason: str = "") -> Room:
        """员工直接修改房态"""
        room = self.require_room(room_id)

        # 有在住预订的房间不能手动改为其他状态，需通过退房/取消操作
        if room.status == RoomStatus.OCCUPIED and status != RoomStatus.OCCUPIED:
            in_house = self.db.query(Booking).filter(
                Booking.room_id == room_id,
                Booking.booking_status == BookingStatus.CHECKED_IN
            ).count()
            if in_house:
                raise ValidationError(
                    "Room has a checked-in booking; check the guest out first"
                )

        event = change_room_status(room, status, changed_by=changed_by, reason=reason)
        self.db.commit()
        self.db.refresh(room)

        if event:
            self._publish_event(event)
        return room

    def delete_room(self, room_id: int) -> Room:
        """软删除：只停用，不删除记录"""
        room = self.require_room(room_id)
        room.is_active = False
        self.db.commit()
        self.db.refresh(room)
        logger.info("Room %s deactivated", room.room_number)
        return room

    # ============== 可用性查询 ==============

    def get_available_rooms(self, check_in: datetime, check_out: datetime,
                            capacity: Optional[int] = None,
                            room_type: Optional[RoomType] = None) -> List[Room]:
        """
        指定入住区间内可预订的房间

        排除已软删除的房间、维修/停用房态的房间以及区间内已被占用的房间
        结果按房价升序
        """
        if check_in is None or check_out is None:
            raise ValidationError("Check-in and check-out dates are required")
        if check_in >= check_out:
            raise ValidationError("Check-out date must be after check-in date")
        if capacity is not None and capacity < 1:
            raise ValidationError("Capacity must be at least 1")

        busy_room_ids = {
            booking.room_id
            for booking in BookingRepository(self.db).find_active_overlapping(check_in, check_out)
        }

        query = self.db.query(Room).filter(
            Room.is_active == True,
            ~Room.status.in_(UNBOOKABLE_ROOM_STATUSES)
        )
        if capacity is not None:
            query = query.filter(Room.capacity >= capacity)
        if room_type is not None:
            query = query.filter(Room.room_type == room_type)

        rooms = query.order_by(Room.price_per_night, Room.room_number).all()
        return [room for room in rooms if room.id not in busy_room_ids]
