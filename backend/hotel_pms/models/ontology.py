"""
本体对象定义 (Ontology Objects)
酒店预订核心实体：房间、客人、预订、附加费用、员工
每个实体只有一种规范形态，遗留形态在导入边界处转换
"""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, Text,
    Enum as SQLEnum, Boolean, Numeric, CheckConstraint
)
from sqlalchemy.orm import relationship
from hotel_pms.database import Base


# ============== 枚举定义 ==============

class RoomStatus(str, Enum):
    """房间状态枚举"""
    AVAILABLE = "available"          # 可用
    OCCUPIED = "occupied"            # 入住中
    MAINTENANCE = "maintenance"      # 维修保养
    CLEANING = "cleaning"            # 清洁中
    OUT_OF_ORDER = "out-of-order"    # 停用


class RoomType(str, Enum):
    """房型"""
    SINGLE = "single"
    DOUBLE = "double"
    TRIPLE = "triple"
    SUITE = "suite"
    DELUXE = "deluxe"
    PRESIDENTIAL = "presidential"


class RoomCategory(str, Enum):
    """房间档次"""
    ECONOMY = "economy"
    STANDARD = "standard"
    PREMIUM = "premium"
    LUXURY = "luxury"


class BookingStatus(str, Enum):
    """预订状态枚举（生命周期状态机）"""
    CONFIRMED = "confirmed"        # 已确认（初始状态）
    CHECKED_IN = "checked-in"      # 已入住
    CHECKED_OUT = "checked-out"    # 已退房（终态）
    CANCELLED = "cancelled"        # 已取消（终态）
    NO_SHOW = "no-show"            # 未到店（终态）


# 占用房间的预订状态，参与重叠检测
ACTIVE_BOOKING_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN)

# 终态：不可再转换，也不可编辑
TERMINAL_BOOKING_STATUSES = (
    BookingStatus.CHECKED_OUT, BookingStatus.CANCELLED, BookingStatus.NO_SHOW
)


class PaymentStatus(str, Enum):
    """支付状态，与预订状态相互独立"""
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    """支付方式"""
    CASH = "cash"
    CREDIT_CARD = "credit-card"
    DEBIT_CARD = "debit-card"
    BANK_TRANSFER = "bank-transfer"
    ONLINE = "online"


class BookingSource(str, Enum):
    """预订来源"""
    DIRECT = "direct"
    ONLINE = "online"
    WALK_IN = "walk-in"
    PHONE = "phone"
    EMAIL = "email"


class StaffRole(str, Enum):
    """员工角色"""
    ADMIN = "admin"                # 管理员
    MANAGER = "manager"            # 经理
    RECEPTIONIST = "receptionist"  # 前台
    HOUSEKEEPING = "housekeeping"  # 客房清洁
    MAINTENANCE = "maintenance"    # 工程维修


# ============== 本体对象定义 ==============

class Room(Base):
    """
    房间对象
    status 由预订生命周期和员工直接维护，读取时不重新计算
    capacity 为规范化的总人数；capacity_adults/capacity_children 仅用于展示
    """
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    room_number = Column(String(10), unique=True, nullable=False)    # 房间号
    floor = Column(Integer, nullable=False)                          # 楼层
    room_type = Column(SQLEnum(RoomType), nullable=False)
    category = Column(SQLEnum(RoomCategory), nullable=False, default=RoomCategory.STANDARD)
    capacity = Column(Integer, nullable=False, default=2)            # 最大入住人数
    capacity_adults = Column(Integer)                                # 展示用：成人数
    capacity_children = Column(Integer)                              # 展示用：儿童数
    price_per_night = Column(Numeric(10, 2), nullable=False)         # 当前房价
    status = Column(SQLEnum(RoomStatus), nullable=False, default=RoomStatus.AVAILABLE)
    description = Column(Text)
    is_active = Column(Boolean, default=True)                        # 软删除标记
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("capacity >= 1", name="check_room_capacity_positive"),
        CheckConstraint("price_per_night >= 0", name="check_room_price_non_negative"),
    )

    # 链接
    bookings = relationship("Booking", back_populates="room")


class Guest(Base):
    """
    客人对象
    total_stays 在入住时累加，total_spent 在退房时按最终金额累加
    """
    __tablename__ = "guests"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(100), unique=True, nullable=False)
    phone = Column(String(30))
    id_type = Column(String(20))                          # 证件类型
    id_number = Column(String(50), unique=True)           # 证件号码
    nationality = Column(String(50))
    vip_status = Column(Boolean, default=False)
    total_stays = Column(Integer, nullable=False, default=0)                 # 累计入住次数
    total_spent = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))  # 累计消费金额
    notes = Column(Text)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # 链接
    bookings = relationship("Booking", back_populates="guest")

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Booking(Base):
    """
    预订对象 - 预订核心聚合根
    一个预订绑定一位客人、一间房、一段入住区间 [check_in_date, check_out_date)
    room_rate 为创建时的房价快照，房间后续调价不影响已有预订
    """
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    booking_number = Column(String(30), unique=True, index=True)    # 预订号，插入后在同一事务内赋值
    guest_id = Column(Integer, ForeignKey("guests.id"), nullable=False, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False, index=True)

    check_in_date = Column(DateTime, nullable=False, index=True)
    check_out_date = Column(DateTime, nullable=False, index=True)
    actual_check_in_date = Column(DateTime)
    actual_check_out_date = Column(DateTime)

    number_of_guests = Column(Integer, nullable=False, default=1)
    adults = Column(Integer, default=1)
    children = Column(Integer, default=0)

    # 派生字段
    number_of_nights = Column(Integer, nullable=False)
    room_rate = Column(Numeric(10, 2), nullable=False)
    tax_amount = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    discount_amount = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    total_amount = Column(Numeric(12, 2), nullable=False)
    paid_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))

    booking_status = Column(SQLEnum(BookingStatus), nullable=False, default=BookingStatus.CONFIRMED, index=True)
    payment_status = Column(SQLEnum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)
    payment_method = Column(SQLEnum(PaymentMethod))
    source = Column(SQLEnum(BookingSource), nullable=False, default=BookingSource.DIRECT)

    special_requests = Column(Text)
    notes = Column(Text)
    cancellation_reason = Column(Text)
    cancellation_date = Column(DateTime)

    created_by = Column(Integer, ForeignKey("staff.id"))       # 公开渠道预订为空
    checked_in_by = Column(Integer, ForeignKey("staff.id"))
    checked_out_by = Column(Integer, ForeignKey("staff.id"))
    cancelled_by = Column(Integer, ForeignKey("staff.id"))
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("check_in_date < check_out_date", name="check_booking_date_order"),
        CheckConstraint("total_amount >= 0", name="check_booking_total_non_negative"),
    )

    # 链接
    guest = relationship("Guest", back_populates="bookings")
    room = relationship("Room", back_populates="bookings")
    additional_charges = relationship(
        "BookingCharge", back_populates="booking",
        order_by="BookingCharge.id", cascade="all, delete-orphan"
    )
    creator = relationship("Staff", foreign_keys=[created_by])
    check_in_operator = relationship("Staff", foreign_keys=[checked_in_by])
    check_out_operator = relationship("Staff", foreign_keys=[checked_out_by])


class BookingCharge(Base):
    """
    附加费用对象
    退房时录入，金额计入预订总额
    """
    __tablename__ = "booking_charges"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    description = Column(String(200), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    charged_at = Column(DateTime, default=datetime.utcnow)
    created_by = Column(Integer, ForeignKey("staff.id"))

    booking = relationship("Booking", back_populates="additional_charges")


class Staff(Base):
    """
    员工对象
    权限由角色通过策略表统一判定
    """
    __tablename__ = "staff"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, nullable=False)   # 登录账号
    email = Column(String(100), unique=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False, default="")
    phone = Column(String(30))
    role = Column(SQLEnum(StaffRole), nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
