"""
预订仓储 - 持久化边界
只做增删改查透传，不包含业务规则；写操作只 flush，提交由调用方负责
"""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, joinedload

from hotel_pms.config import settings
from hotel_pms.exceptions import NotFound
from hotel_pms.models.ontology import (
    Booking, BookingStatus, ACTIVE_BOOKING_STATUSES
)

logger = logging.getLogger(__name__)

R = TypeVar("R")

# count_all / list_page 支持的过滤条件
FILTER_FIELDS = ("status", "room_id", "guest_id", "check_in_from", "check_in_to")


class BookingRepository:
    """预订仓储"""

    def __init__(self, db: Session, read_attempts: Optional[int] = None):
        self.db = db
        self.read_attempts = read_attempts or settings.DB_READ_RETRY_ATTEMPTS

    def _read(self, fn: Callable[[], R]) -> R:
        """读操作遇到瞬时存储错误时有限重试"""
        for attempt in range(1, self.read_attempts + 1):
            try:
                return fn()
            except OperationalError:
                if attempt >= self.read_attempts:
                    raise
                logger.warning("Transient database error on read, retry %d/%d",
                               attempt, self.read_attempts)
                self.db.rollback()
        raise RuntimeError("unreachable")

    # ============== 读 ==============

    def find_by_id(self, booking_id: int) -> Optional[Booking]:
        return self._read(lambda: self.db.query(Booking).filter(Booking.id == booking_id).first())

    def find_by_number(self, booking_number: str) -> Optional[Booking]:
        return self._read(lambda: self.db.query(Booking).filter(
            Booking.booking_number == booking_number
        ).first())

    def find_active_by_room(self, room_id: int,
                            exclude_booking_id: Optional[int] = None) -> List[Booking]:
        """房间上所有占用状态（已确认/已入住）的预订"""
        def query():
            q = self.db.query(Booking).filter(
                Booking.room_id == room_id,
                Booking.booking_status.in_(ACTIVE_BOOKING_STATUSES)
            )
            if exclude_booking_id is not None:
                q = q.filter(Booking.id != exclude_booking_id)
            return q.order_by(Booking.check_in_date).all()
        return self._read(query)

    def find_active_overlapping(self, check_in: datetime, check_out: datetime) -> List[Booking]:
        """与区间 [check_in, check_out) 相交的占用预订（用于可用房间搜索）"""
        return self._read(lambda: self.db.query(Booking).filter(
            Booking.booking_status.in_(ACTIVE_BOOKING_STATUSES),
            Booking.check_in_date < check_out,
            Booking.check_out_date > check_in
        ).all())

    def find_by_check_in_window(self, start: datetime, end: datetime,
                                statuses: Tuple[BookingStatus, ...]) -> List[Booking]:
        return self._read(lambda: self.db.query(Booking).options(
            joinedload(Booking.guest), joinedload(Booking.room)
        ).filter(
            Booking.check_in_date >= start,
            Booking.check_in_date < end,
            Booking.booking_status.in_(statuses)
        ).order_by(Booking.check_in_date).all())

    def find_by_check_out_window(self, start: datetime, end: datetime,
                                 statuses: Tuple[BookingStatus, ...]) -> List[Booking]:
        return self._read(lambda: self.db.query(Booking).options(
            joinedload(Booking.guest), joinedload(Booking.room)
        ).filter(
            Booking.check_out_date >= start,
            Booking.check_out_date < end,
            Booking.booking_status.in_(statuses)
        ).order_by(Booking.check_out_date).all())

    def _filtered(self, filters: Dict[str, Any]):
        unknown = set(filters) - set(FILTER_FIELDS)
        if unknown:
            raise ValueError(f"Unsupported booking filter: {', '.join(sorted(unknown))}")

        query = self.db.query(Booking)
        if filters.get("status") is not None:
            query = query.filter(Booking.booking_status == filters["status"])
        if filters.get("room_id") is not None:
            query = query.filter(Booking.room_id == filters["room_id"])
        if filters.get("guest_id") is not None:
            query = query.filter(Booking.guest_id == filters["guest_id"])
        if filters.get("check_in_from") is not None:
            query = query.filter(Booking.check_in_date >= filters["check_in_from"])
        if filters.get("check_in_to") is not None:
            query = query.filter(Booking.check_in_date < filters["check_in_to"])
        return query

    def count_all(self, **filters: Any) -> int:
        return self._read(lambda: self._filtered(filters).count())

    def list_page(self, offset: int, limit: int, **filters: Any) -> List[Booking]:
        return self._read(lambda: self._filtered(filters).options(
            joinedload(Booking.guest), joinedload(Booking.room)
        ).order_by(Booking.check_in_date.desc(), Booking.id.desc()).offset(offset).limit(limit).all())

    # ============== 写 ==============

    def insert(self, booking: Booking) -> Booking:
        """加入会话并 flush，主键在返回时可用"""
        self.db.add(booking)
        self.db.flush()
        return booking

    def update_by_id(self, booking_id: int, patch: Dict[str, Any]) -> Booking:
        booking = self.db.query(Booking).filter(Booking.id == booking_id).first()
        if booking is None:
            raise NotFound("Booking not found", booking_id=booking_id)
        for key, value in patch.items():
            if not hasattr(Booking, key):
                raise AttributeError(f"Booking has no field {key!r}")
            setattr(booking, key, value)
        self.db.flush()
        return booking
