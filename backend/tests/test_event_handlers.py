"""
事件处理器单元测试
"""
import logging
import pytest

from hotel_pms.models.events import EventType, BookingEventData, RoomStatusChangedData
from hotel_pms.services.event_bus import Event, EventBus
from hotel_pms.services.event_handlers import EventHandlers


class TestEventHandlers:
    """事件处理器测试"""

    @pytest.fixture
    def bus(self):
        bus = EventBus()
        bus.clear_subscribers()
        bus.clear_history()
        yield bus
        bus.clear_subscribers()

    @pytest.fixture
    def handlers(self):
        return EventHandlers()

    def test_register_subscribes_all_types(self, bus, handlers):
        handlers.register_handlers(bus)

        subscribers = bus.get_subscribers()
        assert subscribers["booking.created"] == ["handle_booking_event"]
        assert subscribers["booking.no_show"] == ["handle_booking_event"]
        assert subscribers["room.status_changed"] == ["handle_room_status_changed"]
        assert handlers.registered

    def test_register_twice_is_noop(self, bus, handlers):
        handlers.register_handlers(bus)
        handlers.register_handlers(bus)
        assert len(bus.get_subscribers()["booking.created"]) == 1

    def test_unregister(self, bus, handlers):
        handlers.register_handlers(bus)
        handlers.unregister_handlers(bus)
        assert bus.get_subscribers("booking.created") == {"booking.created": []}
        assert not handlers.registered

    def test_booking_event_audited(self, bus, handlers, caplog):
        handlers.register_handlers(bus)
        event = Event.build(
            EventType.BOOKING_CANCELLED,
            BookingEventData(booking_number="BK2024000003", room_number="101",
                             old_status="confirmed", new_status="cancelled",
                             operator_id=2, reason="Guest request"),
            source="booking_service"
        )

        with caplog.at_level(logging.INFO, logger="hotel_pms.audit"):
            bus.publish(event)

        message = caplog.records[-1].getMessage()
        assert "BK2024000003" in message
        assert "confirmed -> cancelled" in message
        assert "Guest request" in message

    def test_room_event_audited(self, bus, handlers, caplog):
        handlers.register_handlers(bus)
        event = Event.build(
            EventType.ROOM_STATUS_CHANGED,
            RoomStatusChangedData(room_id=1, room_number="101", old_status="occupied",
                                  new_status="cleaning", reason="Check-out BK2024000001"),
            source="room_service"
        )

        with caplog.at_level(logging.INFO, logger="hotel_pms.audit"):
            bus.publish(event)

        assert "101 occupied -> cleaning" in caplog.records[-1].getMessage()
