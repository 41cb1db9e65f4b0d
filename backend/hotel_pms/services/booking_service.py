"""
预订服务 - 预订生命周期状态机
管理 Booking 对象（预订核心聚合根）

confirmed → checked-in → checked-out
confirmed → cancelled / no-show；checked-in → cancelled

每个操作在一个事务内完成预订、房间、客人的全部写入；
任何一步失败都回滚整个会话，事务提交后才发布领域事件
"""
from dataclasses import dataclass, fields
from datetime import datetime, timedelta
from decimal import Decimal
from math import ceil
from typing import Callable, Dict, List, Optional, Tuple
import logging

from sqlalchemy.orm import Session

from hotel_pms.config import settings
from hotel_pms.exceptions import (
    ValidationError, NotFound, Conflict, InvalidTransition, InvalidModification
)
from hotel_pms.models.ontology import (
    Booking, BookingCharge, BookingStatus, BookingSource, PaymentStatus, PaymentMethod,
    Room, RoomStatus, Guest, TERMINAL_BOOKING_STATUSES
)
from hotel_pms.models.schemas import BookingCreate, BookingUpdate, ChargeCreate
from hotel_pms.models.events import EventType, BookingEventData, utc_now
from hotel_pms.services.event_bus import event_bus, Event
from hotel_pms.services.booking_repository import BookingRepository
from hotel_pms.services.overlap_checker import OverlapChecker
from hotel_pms.services.guest_service import GuestService
from hotel_pms.services.room_service import change_room_status
from hotel_pms.services.room_lock import room_locks
from hotel_pms.services.pricing import derive, sum_charges, to_money

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

# 修改时改变入住区间/房间的字段
STAY_FIELDS = ("room_id", "check_in_date", "check_out_date")
# 修改时需要重新计算总额的字段
PRICING_FIELDS = STAY_FIELDS + ("tax_amount", "discount_amount")
PARTY_FIELDS = ("number_of_guests", "adults", "children")
# 必填字段显式传 None 时视为未修改
NON_NULLABLE_FIELDS = STAY_FIELDS + (
    "guest_id", "number_of_guests", "children", "tax_amount", "discount_amount",
    "paid_amount", "payment_status"
)


@dataclass
class BookingDraft:
    """待准入的预订；员工渠道和公开渠道共用"""
    room_id: int
    check_in_date: datetime
    check_out_date: datetime
    guest_id: Optional[int] = None
    number_of_guests: int = 1
    adults: Optional[int] = None
    children: int = 0
    tax_amount: Decimal = Decimal("0")
    discount_amount: Decimal = Decimal("0")
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_method: Optional[PaymentMethod] = None
    source: BookingSource = BookingSource.DIRECT
    special_requests: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_schema(cls, data: BookingCreate) -> "BookingDraft":
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.model_dump().items() if k in names})


class BookingService:
    """预订服务"""

    def __init__(self, db: Session,
                 event_publisher: Callable[[Event], None] = None,
                 clock: Optional[Clock] = None):
        self.db = db
        self.repository = BookingRepository(db)
        self.overlap_checker = OverlapChecker(self.repository)
        self.guest_service = GuestService(db)
        # 支持依赖注入事件发布器和时钟，便于测试
        self._publish_event = event_publisher or event_bus.publish
        self._now = clock or utc_now

    # ============== 查询 ==============

    def get_booking(self, booking_id: int) -> Booking:
        booking = self.repository.find_by_id(booking_id)
        if not booking:
            raise NotFound("Booking not found", booking_id=booking_id)
        return booking

    def get_booking_by_number(self, booking_number: str) -> Booking:
        booking = self.repository.find_by_number(booking_number)
        if not booking:
            raise NotFound("Booking not found", booking_number=booking_number)
        return booking

    def list_bookings(self, page: int = 1, limit: int = 20,
                      **filters) -> Tuple[List[Booking], Dict[str, int]]:
        """分页查询，返回 (预订列表, {page, pages, total})"""
        if page < 1 or limit < 1:
            raise ValidationError("Page and limit must be positive")
        filters = {k: v for k, v in filters.items() if v is not None}
        total = self.repository.count_all(**filters)
        items = self.repository.list_page((page - 1) * limit, limit, **filters)
        return items, {"page": page, "pages": ceil(total / limit), "total": total}

    def _today_window(self) -> Tuple[datetime, datetime]:
        start = datetime.combine(self._now().date(), datetime.min.time())
        return start, start + timedelta(days=1)

    def get_today_arrivals(self) -> List[Booking]:
        """今日预抵（含已办理入住的）"""
        start, end = self._today_window()
        return self.repository.find_by_check_in_window(
            start, end, (BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN)
        )

    def get_today_departures(self) -> List[Booking]:
        """今日预离（仍在住）"""
        start, end = self._today_window()
        return self.repository.find_by_check_out_window(
            start, end, (BookingStatus.CHECKED_IN,)
        )

    # ============== 内部工具 ==============

    def _lock_room(self, room_id: int) -> Room:
        """锁定房间行（SQLite 下 FOR UPDATE 被忽略，由进程内房间锁保证串行）"""
        room = self.db.query(Room).filter(Room.id == room_id).with_for_update().first()
        if not room:
            raise NotFound("Room not found", room_id=room_id)
        return room

    def _lock_booking(self, booking_id: int) -> Booking:
        booking = self.db.query(Booking).filter(
            Booking.id == booking_id
        ).with_for_update().first()
        if not booking:
            raise NotFound("Booking not found", booking_id=booking_id)
        return booking

    @staticmethod
    def _check_capacity(room: Room, number_of_guests: int) -> None:
        if number_of_guests is None or number_of_guests < 1:
            raise ValidationError("Number of guests must be at least 1")
        if number_of_guests > room.capacity:
            raise ValidationError(
                f"Room {room.room_number} accommodates at most {room.capacity} guests"
            )

    @staticmethod
    def _resolve_party(number_of_guests: Optional[int], adults: Optional[int],
                       children: Optional[int]) -> Tuple[int, int, int]:
        """
        入住人数与成人/儿童明细对齐

        只给人数时成人数 = 人数 - 儿童；只给成人时人数 = 成人 + 儿童；都给则必须相等
        """
        children = children or 0
        if adults is None:
            if number_of_guests is None:
                raise ValidationError("Number of guests must be at least 1")
            adults = number_of_guests - children
            if adults < 1:
                raise ValidationError("A booking needs at least one adult")
        elif number_of_guests is None:
            number_of_guests = adults + children
        elif number_of_guests != adults + children:
            raise ValidationError("Number of guests must equal adults plus children")
        return number_of_guests, adults, children

    @staticmethod
    def _check_stay_dates(check_in: datetime, check_out: datetime) -> None:
        if check_in is None or check_out is None:
            raise ValidationError("Check-in and check-out dates are required")
        if check_in >= check_out:
            raise ValidationError("Check-out date must be after check-in date")

    def _booking_number(self, booking: Booking) -> str:
        """预订号：前缀 + 年份 + 6 位主键，主键唯一所以预订号唯一"""
        return f"{settings.BOOKING_NUMBER_PREFIX}{self._now().year}{booking.id:06d}"

    def _is_today(self, moment: datetime) -> bool:
        return moment.date() == self._now().date()

    def _room_held_by_others(self, room_id: int, booking_id: int) -> bool:
        """房间是否还被其他在住预订或今日入住的预订占用"""
        start, end = self._today_window()
        in_house = self.db.query(Booking).filter(
            Booking.room_id == room_id,
            Booking.id != booking_id,
            Booking.booking_status == BookingStatus.CHECKED_IN
        ).count()
        arriving = self.db.query(Booking).filter(
            Booking.room_id == room_id,
            Booking.id != booking_id,
            Booking.booking_status == BookingStatus.CONFIRMED,
            Booking.check_in_date >= start,
            Booking.check_in_date < end
        ).count()
        return bool(in_house or arriving)

    def _release_room_if_idle(self, booking: Booking, room: Room,
                              operator_id: Optional[int], reason: str,
                              check_in_date: Optional[datetime] = None) -> Optional[Event]:
        """当日预订占用的房间在取消/未到/改期后释放"""
        if room.status != RoomStatus.OCCUPIED:
            return None
        check_in_date = check_in_date or booking.check_in_date
        if check_in_date.date() > self._now().date():
            return None
        if self._room_held_by_others(room.id, booking.id):
            return None
        return change_room_status(room, RoomStatus.AVAILABLE, operator_id, reason)

    def _booking_event(self, event_type: EventType, booking: Booking,
                       old_status: Optional[BookingStatus] = None,
                       operator_id: Optional[int] = None, reason: str = "") -> Event:
        return Event.build(
            event_type,
            BookingEventData(
                booking_id=booking.id,
                booking_number=booking.booking_number or "",
                guest_id=booking.guest_id,
                room_id=booking.room_id,
                room_number=booking.room.room_number if booking.room else "",
                old_status=old_status.value if old_status else "",
                new_status=booking.booking_status.value,
                check_in_date=booking.check_in_date.isoformat(),
                check_out_date=booking.check_out_date.isoformat(),
                total_amount=float(booking.total_amount or 0),
                operator_id=operator_id,
                reason=reason
            ),
            source="booking_service"
        )

    def _publish(self, events: List[Optional[Event]]) -> None:
        """事务提交后调用"""
        for event in events:
            if event is not None:
                self._publish_event(event)

    # ============== 创建 ==============

    def create_booking(self, data: BookingCreate, created_by: Optional[int]) -> Booking:
        """员工创建预订，必须提供操作员工"""
        if created_by is None:
            raise ValidationError("An authenticated staff member is required to create a booking")
        return self.admit(BookingDraft.from_schema(data), created_by=created_by)

    def admit(self, draft: BookingDraft, created_by: Optional[int] = None,
              resolve_guest: Optional[Callable[[], Guest]] = None) -> Booking:
        """
        预订准入

        1. 校验入住早于离店
        2. 锁定并解析房间、客人
        3. 冲突检测
        4. 按房间当前房价快照，派生晚数和总额
        5. 插入并生成预订号
        6. 当日入住的预订立即占用房间

        resolve_guest 用于公开渠道在同一事务内查找或创建客人
        """
        self._check_stay_dates(draft.check_in_date, draft.check_out_date)
        number_of_guests, adults, children = self._resolve_party(
            draft.number_of_guests, draft.adults, draft.children
        )
        if draft.guest_id is None and resolve_guest is None:
            raise ValidationError("Guest is required")

        with room_locks.hold(draft.room_id):
            try:
                room = self._lock_room(draft.room_id)
                if not room.is_active:
                    raise ValidationError(f"Room {room.room_number} is not available for booking")

                if resolve_guest is not None:
                    guest = resolve_guest()
                else:
                    guest = self.guest_service.require_guest(draft.guest_id)

                self._check_capacity(room, number_of_guests)

                if self.overlap_checker.has_conflict(
                    room.id, draft.check_in_date, draft.check_out_date
                ):
                    logger.warning(
                        "Booking rejected: room %s already booked between %s and %s",
                        room.room_number, draft.check_in_date, draft.check_out_date
                    )
                    raise Conflict()

                # 房价以房间当前价格为准，不接受客户端传入
                room_rate = to_money(room.price_per_night)
                price = derive(
                    room_rate, draft.check_in_date, draft.check_out_date,
                    tax_amount=draft.tax_amount, discount_amount=draft.discount_amount
                )

                booking = Booking(
                    guest_id=guest.id,
                    room_id=room.id,
                    check_in_date=draft.check_in_date,
                    check_out_date=draft.check_out_date,
                    number_of_guests=number_of_guests,
                    adults=adults,
                    children=children,
                    number_of_nights=price.number_of_nights,
                    room_rate=room_rate,
                    tax_amount=to_money(draft.tax_amount),
                    discount_amount=to_money(draft.discount_amount),
                    total_amount=price.total_amount,
                    paid_amount=Decimal("0"),
                    booking_status=BookingStatus.CONFIRMED,
                    payment_status=draft.payment_status,
                    payment_method=draft.payment_method,
                    source=draft.source,
                    special_requests=draft.special_requests,
                    notes=draft.notes,
                    created_by=created_by
                )
                self.repository.insert(booking)
                booking.booking_number = self._booking_number(booking)

                room_event = None
                if self._is_today(draft.check_in_date):
                    room_event = change_room_status(
                        room, RoomStatus.OCCUPIED, created_by,
                        reason=f"Same-day booking {booking.booking_number}"
                    )

                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        self.db.refresh(booking)
        logger.info("Booking %s created for room %s (%s to %s, total %s)",
                    booking.booking_number, room.room_number,
                    booking.check_in_date, booking.check_out_date, booking.total_amount)

        self._publish([
            self._booking_event(EventType.BOOKING_CREATED, booking, operator_id=created_by),
            room_event
        ])
        return booking

    # ============== 修改 ==============

    def update_booking(self, booking_id: int, data: BookingUpdate,
                       updated_by: Optional[int] = None) -> Booking:
        """
        修改非终态预订

        改期或换房时重新做冲突检测（排除自身）、重新快照房价并重新计算总额；
        仅修改税费/折扣时按原房价快照重新计算
        """
        booking = self.get_booking(booking_id)
        if booking.booking_status in TERMINAL_BOOKING_STATUSES:
            raise InvalidModification()

        patch = data.model_dump(exclude_unset=True)
        for name in NON_NULLABLE_FIELDS:
            if name in patch and patch[name] is None:
                del patch[name]

        new_room_id = patch.get("room_id", booking.room_id)
        check_in = patch.get("check_in_date", booking.check_in_date)
        check_out = patch.get("check_out_date", booking.check_out_date)
        stay_changed = (
            new_room_id != booking.room_id
            or check_in != booking.check_in_date
            or check_out != booking.check_out_date
        )
        self._check_stay_dates(check_in, check_out)

        if any(name in patch for name in PARTY_FIELDS):
            adults = patch.get("adults")
            number_of_guests = patch.get("number_of_guests")
            if adults is None and number_of_guests is None:
                # 只改儿童数时保留原成人数
                adults = booking.adults
            number_of_guests, adults, children = self._resolve_party(
                number_of_guests, adults, patch.get("children", booking.children)
            )
            patch.update(number_of_guests=number_of_guests, adults=adults, children=children)

        events: List[Optional[Event]] = []
        with room_locks.hold(booking.room_id, new_room_id):
            try:
                booking = self._lock_booking(booking_id)
                if booking.booking_status in TERMINAL_BOOKING_STATUSES:
                    raise InvalidModification()

                old_room = booking.room
                old_check_in = booking.check_in_date
                room = self._lock_room(new_room_id) if stay_changed else old_room
                room_rate = booking.room_rate

                if stay_changed:
                    if not room.is_active:
                        raise ValidationError(f"Room {room.room_number} is not available for booking")
                    if self.overlap_checker.has_conflict(
                        room.id, check_in, check_out, exclude_booking_id=booking.id
                    ):
                        logger.warning("Booking %s update rejected: dates conflict on room %s",
                                       booking.booking_number, room.room_number)
                        raise Conflict()
                    room_rate = to_money(room.price_per_night)

                if "guest_id" in patch:
                    self.guest_service.require_guest(patch["guest_id"])

                self._check_capacity(room, patch.get("number_of_guests", booking.number_of_guests))

                for key, value in patch.items():
                    setattr(booking, key, value)

                if any(name in patch for name in PRICING_FIELDS):
                    booking.room_rate = room_rate
                    price = derive(
                        room_rate, check_in, check_out,
                        tax_amount=booking.tax_amount,
                        discount_amount=booking.discount_amount,
                        additional_charges=booking.additional_charges
                    )
                    booking.number_of_nights = price.number_of_nights
                    booking.total_amount = price.total_amount

                if new_room_id != old_room.id:
                    booking.room = room
                    reason = f"Booking {booking.booking_number} moved to room {room.room_number}"
                    if booking.booking_status == BookingStatus.CHECKED_IN:
                        # 在住换房：原房间待清洁，新房间入住
                        events.append(change_room_status(
                            old_room, RoomStatus(settings.POST_CHECKOUT_ROOM_STATUS),
                            updated_by, reason
                        ))
                        events.append(change_room_status(
                            room, RoomStatus.OCCUPIED, updated_by, reason
                        ))

                # 原本已到入住日的确认预订改到别的房间或以后的日期：释放原房间
                still_due_here = (new_room_id == old_room.id
                                  and check_in.date() <= self._now().date())
                if (booking.booking_status == BookingStatus.CONFIRMED
                        and stay_changed and not still_due_here):
                    events.append(self._release_room_if_idle(
                        booking, old_room, updated_by,
                        reason=f"Booking {booking.booking_number} rescheduled",
                        check_in_date=old_check_in
                    ))

                if (booking.booking_status == BookingStatus.CONFIRMED
                        and stay_changed and self._is_today(check_in)):
                    events.append(change_room_status(
                        room, RoomStatus.OCCUPIED, updated_by,
                        reason=f"Same-day booking {booking.booking_number}"
                    ))

                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        self.db.refresh(booking)
        logger.info("Booking %s updated (%s)", booking.booking_number, ", ".join(sorted(patch)) or "no changes")
        events.insert(0, self._booking_event(EventType.BOOKING_UPDATED, booking, operator_id=updated_by))
        self._publish(events)
        return booking

    # ============== 状态转换 ==============

    def check_in(self, booking_id: int, checked_in_by: Optional[int] = None) -> Booking:
        """办理入住：confirmed → checked-in，房间入住中，客人入住次数 +1"""
        try:
            booking = self._lock_booking(booking_id)
            if booking.booking_status != BookingStatus.CONFIRMED:
                raise InvalidTransition(
                    "Booking must be confirmed before check-in",
                    current_status=booking.booking_status.value
                )

            old_status = booking.booking_status
            booking.booking_status = BookingStatus.CHECKED_IN
            booking.actual_check_in_date = self._now()
            booking.checked_in_by = checked_in_by

            room_event = change_room_status(
                booking.room, RoomStatus.OCCUPIED, checked_in_by,
                reason=f"Check-in {booking.booking_number}"
            )
            GuestService.record_stay(booking.guest)
            events = [
                self._booking_event(EventType.BOOKING_CHECKED_IN, booking, old_status, checked_in_by),
                room_event
            ]
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        self._publish(events)

        logger.info("Booking %s checked in to room %s",
                    booking.booking_number, booking.room.room_number)
        return booking

    def check_out(self, booking_id: int, checked_out_by: Optional[int] = None,
                  additional_charges: Optional[List[ChargeCreate]] = None) -> Tuple[Booking, Decimal]:
        """
        办理退房：checked-in → checked-out

        附加费用计入总额，房间转为待清洁（或维修），客人累计消费增加最终总额

        Returns:
            (预订, 本次附加费用合计)
        """
        charges = list(additional_charges or [])
        try:
            booking = self._lock_booking(booking_id)
            if booking.booking_status != BookingStatus.CHECKED_IN:
                raise InvalidTransition(
                    "Booking must be checked in before check-out",
                    current_status=booking.booking_status.value
                )

            now = self._now()
            charges_total = sum_charges(charges)
            for charge in charges:
                booking.additional_charges.append(BookingCharge(
                    description=charge.description,
                    amount=to_money(charge.amount),
                    charged_at=now,
                    created_by=checked_out_by
                ))
            booking.total_amount = to_money(booking.total_amount) + charges_total

            old_status = booking.booking_status
            booking.booking_status = BookingStatus.CHECKED_OUT
            booking.actual_check_out_date = now
            booking.checked_out_by = checked_out_by

            room_event = change_room_status(
                booking.room, RoomStatus(settings.POST_CHECKOUT_ROOM_STATUS), checked_out_by,
                reason=f"Check-out {booking.booking_number}"
            )
            GuestService.record_spending(booking.guest, booking.total_amount)
            events = [
                self._booking_event(EventType.BOOKING_CHECKED_OUT, booking, old_status, checked_out_by),
                room_event
            ]
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        self._publish(events)

        logger.info("Booking %s checked out, total %s (charges %s)",
                    booking.booking_number, booking.total_amount, charges_total)
        return booking, charges_total

    def cancel_booking(self, booking_id: int, reason: str,
                       cancelled_by: Optional[int] = None) -> Booking:
        """
        取消预订：confirmed / checked-in → cancelled
        已入住的预订取消后房间恢复可用
        """
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("Cancellation reason is required")

        try:
            booking = self._lock_booking(booking_id)
            if booking.booking_status in TERMINAL_BOOKING_STATUSES:
                raise InvalidTransition(
                    "Booking cannot be cancelled",
                    current_status=booking.booking_status.value
                )

            old_status = booking.booking_status
            booking.booking_status = BookingStatus.CANCELLED
            booking.cancellation_reason = reason
            booking.cancellation_date = self._now()
            booking.cancelled_by = cancelled_by

            room_reason = f"Cancelled {booking.booking_number}"
            if old_status == BookingStatus.CHECKED_IN:
                room_event = change_room_status(
                    booking.room, RoomStatus.AVAILABLE, cancelled_by, room_reason
                )
            else:
                room_event = self._release_room_if_idle(
                    booking, booking.room, cancelled_by, room_reason
                )
            events = [
                self._booking_event(EventType.BOOKING_CANCELLED, booking, old_status,
                                    cancelled_by, reason),
                room_event
            ]
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        self._publish(events)

        logger.info("Booking %s cancelled: %s", booking.booking_number, reason)
        return booking

    def mark_no_show(self, booking_id: int, marked_by: Optional[int] = None) -> Booking:
        """标记未到：仅 confirmed 可转换"""
        try:
            booking = self._lock_booking(booking_id)
            if booking.booking_status != BookingStatus.CONFIRMED:
                raise InvalidTransition(
                    "Only confirmed bookings can be marked as no-show",
                    current_status=booking.booking_status.value
                )

            old_status = booking.booking_status
            booking.booking_status = BookingStatus.NO_SHOW
            room_event = self._release_room_if_idle(
                booking, booking.room, marked_by, f"No-show {booking.booking_number}"
            )
            events = [
                self._booking_event(EventType.BOOKING_NO_SHOW, booking, old_status, marked_by),
                room_event
            ]
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        self._publish(events)

        logger.info("Booking %s marked as no-show", booking.booking_number)
        return booking
