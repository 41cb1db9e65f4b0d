"""
预订冲突检测
同一房间上已确认/已入住的预订，入住区间 [check_in, check_out) 两两不得相交
"""
from datetime import datetime
from typing import List, Optional

from hotel_pms.models.ontology import Booking
from hotel_pms.services.booking_repository import BookingRepository


def intervals_overlap(a_start: datetime, a_end: datetime,
                      b_start: datetime, b_end: datetime) -> bool:
    """
    半开区间相交判断

    严格小于：前一单的离店日与后一单的入住日相同不算冲突（同日换房）
    """
    return a_start < b_end and b_start < a_end


class OverlapChecker:
    """只读检测，不修改任何状态；区间合法性由调用方保证"""

    def __init__(self, repository: BookingRepository):
        self.repository = repository

    def find_conflicts(self, room_id: int, check_in: datetime, check_out: datetime,
                       exclude_booking_id: Optional[int] = None) -> List[Booking]:
        candidates = self.repository.find_active_by_room(
            room_id, exclude_booking_id=exclude_booking_id
        )
        return [
            booking for booking in candidates
            if intervals_overlap(booking.check_in_date, booking.check_out_date,
                                 check_in, check_out)
        ]

    def has_conflict(self, room_id: int, check_in: datetime, check_out: datetime,
                     exclude_booking_id: Optional[int] = None) -> bool:
        return bool(self.find_conflicts(room_id, check_in, check_out, exclude_booking_id))
