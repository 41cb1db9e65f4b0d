"""
事件总线 - 进程内发布/订阅
预订生命周期在提交事务后发布事件，订阅者负责日志等副作用
"""
from typing import Callable, Dict, List, Any, Optional
from dataclasses import dataclass, field
from datetime import datetime
from collections import deque
import logging
import threading
import uuid

from hotel_pms.models.events import BaseEventData, EventType, utc_now

logger = logging.getLogger(__name__)

EventHandler = Callable[["Event"], None]


@dataclass
class Event:
    """总线上传递的事件"""
    event_type: str
    data: Dict[str, Any]
    source: str  # 触发来源（服务名）
    timestamp: datetime = field(default_factory=utc_now)
    event_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @classmethod
    def build(cls, event_type: EventType, payload: BaseEventData, source: str) -> "Event":
        return cls(
            event_type=event_type.value,
            data=payload.to_dict(),
            source=source,
        )


class EventBus:
    """
    进程内事件总线（线程安全单例）

    event_bus.subscribe("booking.created", handler)
    event_bus.publish(Event.build(EventType.BOOKING_CREATED, data, "booking_service"))
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._subscribers: Dict[str, List[EventHandler]] = {}
        self._event_history: deque = deque(maxlen=200)
        self._subscriber_lock = threading.Lock()
        self._initialized = True

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """订阅事件，同一处理器重复订阅只登记一次"""
        with self._subscriber_lock:
            handlers = self._subscribers.setdefault(event_type, [])
            if handler not in handlers:
                handlers.append(handler)
                logger.debug("Handler %s subscribed to %s", handler.__name__, event_type)

    def unsubscribe(self, event_type: str, handler: EventHandler) -> None:
        with self._subscriber_lock:
            handlers = self._subscribers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

    def publish(self, event: Event) -> None:
        """
        同步分发事件

        单个处理器抛出的异常只记录日志，不影响其他处理器，
        也不会回传给已经提交事务的调用方
        """
        self._event_history.append(event)

        with self._subscriber_lock:
            handlers = list(self._subscribers.get(event.event_type, []))

        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Event handler %s failed for %s", handler.__name__, event.event_type
                )

    def get_history(self, event_type: Optional[str] = None, limit: int = 50) -> List[Event]:
        """最近发布的事件，最新的在前"""
        history = list(self._event_history)
        if event_type:
            history = [e for e in history if e.event_type == event_type]
        return list(reversed(history))[:limit]

    def get_subscribers(self, event_type: Optional[str] = None) -> Dict[str, List[str]]:
        with self._subscriber_lock:
            if event_type:
                return {event_type: [h.__name__ for h in self._subscribers.get(event_type, [])]}
            return {
                et: [h.__name__ for h in handlers]
                for et, handlers in self._subscribers.items()
            }

    def clear_subscribers(self) -> None:
        """清空所有订阅（用于测试）"""
        with self._subscriber_lock:
            self._subscribers.clear()

    def clear_history(self) -> None:
        self._event_history.clear()


# 全局事件总线实例
event_bus = EventBus()
