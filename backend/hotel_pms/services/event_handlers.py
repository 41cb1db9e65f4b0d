"""
事件处理器
订阅预订和房态领域事件，写入审计日志
"""
import logging
from typing import Optional

from hotel_pms.models.events import EventType
from hotel_pms.services.event_bus import event_bus, EventBus, Event

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("hotel_pms.audit")

BOOKING_EVENTS = (
    EventType.BOOKING_CREATED,
    EventType.BOOKING_UPDATED,
    EventType.BOOKING_CHECKED_IN,
    EventType.BOOKING_CHECKED_OUT,
    EventType.BOOKING_CANCELLED,
    EventType.BOOKING_NO_SHOW,
)


class EventHandlers:
    """事件处理器集合"""

    def __init__(self):
        self._registered = False

    @property
    def registered(self) -> bool:
        return self._registered

    def handle_booking_event(self, event: Event) -> None:
        data = event.data
        transition = ""
        if data.get("old_status"):
            transition = f" {data['old_status']} -> {data['new_status']}"
        audit_logger.info(
            "%s booking=%s room=%s guest=%s%s operator=%s%s",
            event.event_type,
            data.get("booking_number"),
            data.get("room_number"),
            data.get("guest_id"),
            transition,
            data.get("operator_id"),
            f" reason={data['reason']!r}" if data.get("reason") else ""
        )

    def handle_room_status_changed(self, event: Event) -> None:
        data = event.data
        audit_logger.info(
            "%s room=%s %s -> %s by=%s (%s)",
            event.event_type,
            data.get("room_number"),
            data.get("old_status"),
            data.get("new_status"),
            data.get("changed_by"),
            data.get("reason") or "manual"
        )

    def register_handlers(self, event_bus_instance: Optional[EventBus] = None) -> None:
        """注册所有事件处理器，重复调用无副作用"""
        if self._registered:
            return
        bus = event_bus_instance or event_bus
        for event_type in BOOKING_EVENTS:
            bus.subscribe(event_type.value, self.handle_booking_event)
        bus.subscribe(EventType.ROOM_STATUS_CHANGED.value, self.handle_room_status_changed)

        self._registered = True
        logger.info("Event handlers registered")

    def unregister_handlers(self, event_bus_instance: Optional[EventBus] = None) -> None:
        """取消注册（用于测试）"""
        bus = event_bus_instance or event_bus
        for event_type in BOOKING_EVENTS:
            bus.unsubscribe(event_type.value, self.handle_booking_event)
        bus.unsubscribe(EventType.ROOM_STATUS_CHANGED.value, self.handle_room_status_changed)
        self._registered = False


# 全局事件处理器实例
event_handlers = EventHandlers()


def register_event_handlers():
    """注册所有事件处理器（应用启动时调用）"""
    event_handlers.register_handlers()
