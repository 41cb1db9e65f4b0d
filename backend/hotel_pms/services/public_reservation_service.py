"""
公开预订服务 - 客人自助渠道
无需登录：查询可用房间、在线预订、按预订号查询、自助取消
在线预订走与员工渠道相同的准入流程，来源记为 online，无操作员工
"""
from datetime import datetime, timedelta
from typing import Callable, List, Optional
import logging
from sqlalchemy.orm import Session
from hotel_pms.config import settings
from hotel_pms.exceptions import AccessDenied, InvalidTransition, ValidationError
from hotel_pms.models.ontology import Booking, BookingSource, Room, TERMINAL_BOOKING_STATUSES
from hotel_pms.models.schemas import PublicReservationCreate, PublicReservationView
from hotel_pms.services.event_bus import Event
from hotel_pms.models.events import utc_now
from hotel_pms.services.booking_service import BookingService, BookingDraft, Clock
from hotel_pms.services.guest_service import GuestService
from hotel_pms.services.room_service import RoomService, UNBOOKABLE_ROOM_STATUSES

logger = logging.getLogger(__name__)

DEFAULT_CANCEL_REASON = "Guest cancellation"


class PublicReservationService:
    """公开预订服务"""

    def __init__(self, db: Session,
                 event_publisher: Callable[[Event], None] = None,
                 clock: Optional[Clock] = None):
        self.db = db
        self._now = clock or utc_now
        self.booking_service = BookingService(db, event_publisher=event_publisher, clock=self._now)
        self.room_service = RoomService(db, event_publisher=event_publisher)
        self.guest_service = GuestService(db)

    def get_available_rooms(self, check_in: datetime, check_out: datetime,
                            capacity: Optional[int] = None) -> List[Room]:
        return self.room_service.get_available_rooms(check_in, check_out, capacity=capacity)

    def create_reservation(self, data: PublicReservationCreate) -> Booking:
        """在线预订：按邮箱查找或创建客人，再走准入流程"""
        room = self.room_service.require_room(data.room_id)
        if room.status in UNBOOKABLE_ROOM_STATUSES:
            raise ValidationError("Room is not available")

        draft = BookingDraft(
            room_id=data.room_id,
            check_in_date=data.check_in_date,
            check_out_date=data.check_out_date,
            number_of_guests=data.number_of_guests,
            adults=data.adults,
            children=data.children,
            source=BookingSource.ONLINE,
            special_requests=data.special_requests
        )
        booking = self.booking_service.admit(
            draft,
            created_by=None,
            resolve_guest=lambda: self.guest_service.find_or_create(data.guest)
        )
        logger.info("Online reservation %s received from %s", booking.booking_number, data.guest.email)
        return booking

    def get_reservation(self, booking_number: str) -> Booking:
        return self.booking_service.get_booking_by_number(booking_number)

    def cancel_reservation(self, booking_number: str, email: str,
                           reason: Optional[str] = None) -> Booking:
        """
        客人自助取消

        邮箱必须与预订客人一致；距入住不足规定小时数时不允许取消
        """
        booking = self.booking_service.get_booking_by_number(booking_number)

        if booking.guest.email.lower() != (email or "").strip().lower():
            raise AccessDenied("Email does not match reservation")

        if booking.booking_status in TERMINAL_BOOKING_STATUSES:
            raise InvalidTransition("Reservation cannot be cancelled")

        notice = timedelta(hours=settings.PUBLIC_CANCEL_NOTICE_HOURS)
        if booking.check_in_date - self._now() < notice:
            raise ValidationError(
                f"Reservations cannot be cancelled less than "
                f"{settings.PUBLIC_CANCEL_NOTICE_HOURS} hours before check-in"
            )

        return self.booking_service.cancel_booking(
            booking.id, (reason or "").strip() or DEFAULT_CANCEL_REASON
        )

    @staticmethod
    def to_view(booking: Booking) -> PublicReservationView:
        """公开查询视图"""
        return PublicReservationView(
            booking_number=booking.booking_number,
            booking_status=booking.booking_status,
            guest_name=booking.guest.name,
            room_number=booking.room.room_number,
            room_type=booking.room.room_type,
            check_in_date=booking.check_in_date,
            check_out_date=booking.check_out_date,
            number_of_nights=booking.number_of_nights,
            number_of_guests=booking.number_of_guests,
            total_amount=booking.total_amount,
            special_requests=booking.special_requests
        )
