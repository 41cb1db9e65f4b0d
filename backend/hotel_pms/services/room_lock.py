"""
房间级互斥锁
创建预订和改期/换房时，从冲突检测到事务提交期间持有对应房间的锁
"""
import threading
from contextlib import contextmanager
from typing import Dict, Iterator


class RoomLockRegistry:
    """按房间 ID 懒加载的锁表（线程安全单例）"""

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
        self._locks: Dict[int, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self._initialized = True

    def get(self, room_id: int) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(room_id)
            if lock is None:
                lock = self._locks[room_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, *room_ids: int) -> Iterator[None]:
        """
        同时持有多个房间的锁

        按房间 ID 升序加锁，避免换房时两个请求交叉等待
        """
        ordered = sorted({rid for rid in room_ids if rid is not None})
        acquired = []
        try:
            for room_id in ordered:
                lock = self.get(room_id)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


room_locks = RoomLockRegistry()
