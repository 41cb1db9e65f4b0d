"""
Pytest 配置和共享 fixtures
"""
import os

# 应用启动时 init_db 使用的引擎，测试中不落盘
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from datetime import datetime
from decimal import Decimal
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from hotel_pms.database import Base, get_db
from hotel_pms.models.ontology import (
    Staff, StaffRole, Room, RoomStatus, RoomType, RoomCategory, Guest
)
from hotel_pms.security.auth import get_password_hash, create_access_token
from hotel_pms.services.booking_service import BookingService
from hotel_pms.main import app

# 服务层测试使用的固定“当前时间”
FIXED_NOW = datetime(2024, 1, 1, 9, 0, 0)


@pytest.fixture(scope="function")
def db_engine():
    """创建内存数据库引擎"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine):
    """创建数据库会话"""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture(scope="function")
def client(db_session):
    """创建测试客户端"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ============== 服务层 Fixtures ==============

@pytest.fixture
def published_events():
    """收集服务发布的事件"""
    return []


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def booking_service(db_session, published_events, clock):
    return BookingService(db_session, event_publisher=published_events.append, clock=clock)


# ============== 认证相关 Fixtures ==============

def _create_staff(db_session, username: str, role: StaffRole) -> Staff:
    staff = Staff(
        username=username,
        password_hash=get_password_hash("123456"),
        first_name=username.capitalize(),
        last_name="Test",
        email=f"{username}@hotel.test",
        role=role,
        is_active=True
    )
    db_session.add(staff)
    db_session.commit()
    db_session.refresh(staff)
    return staff


@pytest.fixture
def admin_staff(db_session):
    return _create_staff(db_session, "admin", StaffRole.ADMIN)


@pytest.fixture
def manager_staff(db_session):
    return _create_staff(db_session, "manager", StaffRole.MANAGER)


@pytest.fixture
def receptionist_staff(db_session):
    return _create_staff(db_session, "front1", StaffRole.RECEPTIONIST)


@pytest.fixture
def housekeeper_staff(db_session):
    return _create_staff(db_session, "housekeeper1", StaffRole.HOUSEKEEPING)


@pytest.fixture
def manager_auth_headers(manager_staff):
    """返回经理认证的请求头"""
    return {"Authorization": f"Bearer {create_access_token(manager_staff.id, manager_staff.role)}"}


@pytest.fixture
def receptionist_auth_headers(receptionist_staff):
    """返回前台认证的请求头"""
    token = create_access_token(receptionist_staff.id, receptionist_staff.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def housekeeper_auth_headers(housekeeper_staff):
    """返回客房清洁认证的请求头"""
    token = create_access_token(housekeeper_staff.id, housekeeper_staff.role)
    return {"Authorization": f"Bearer {token}"}


# ============== 实体相关 Fixtures ==============

def make_room(db_session, room_number: str, price: str = "100.00", capacity: int = 2,
              room_type: RoomType = RoomType.DOUBLE,
              status: RoomStatus = RoomStatus.AVAILABLE) -> Room:
    room = Room(
        room_number=room_number,
        floor=int(room_number[0]),
        room_type=room_type,
        category=RoomCategory.STANDARD,
        capacity=capacity,
        price_per_night=Decimal(price),
        status=status
    )
    db_session.add(room)
    db_session.commit()
    db_session.refresh(room)
    return room


def make_guest(db_session, email: str, first_name: str = "Ana",
               last_name: str = "Silva", id_number: str = None) -> Guest:
    guest = Guest(
        first_name=first_name,
        last_name=last_name,
        email=email,
        phone="+1-555-0100",
        id_number=id_number
    )
    db_session.add(guest)
    db_session.commit()
    db_session.refresh(guest)
    return guest


@pytest.fixture
def sample_room(db_session):
    """房价 100 的双人间"""
    return make_room(db_session, "101", price="100.00", capacity=2)


@pytest.fixture
def sample_room_102(db_session):
    """房价 150 的三人间"""
    return make_room(db_session, "102", price="150.00", capacity=3, room_type=RoomType.TRIPLE)


@pytest.fixture
def sample_guest(db_session):
    return make_guest(db_session, "ana.silva@example.com", id_number="P1234567")


@pytest.fixture
def sample_guest_2(db_session):
    return make_guest(db_session, "li.wei@example.com", first_name="Li", last_name="Wei",
                      id_number="P7654321")


@pytest.fixture
def room_factory(db_session):
    return lambda room_number, **kwargs: make_room(db_session, room_number, **kwargs)


@pytest.fixture
def guest_factory(db_session):
    return lambda email, **kwargs: make_guest(db_session, email, **kwargs)
