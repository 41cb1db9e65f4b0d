"""
Pydantic 模式定义
用于 API 请求/响应验证
对外字段使用 camelCase，同时接受 snake_case 输入
"""
from datetime import datetime, date, time, timezone
from decimal import Decimal
from typing import Optional, List, Any, Tuple, TypeVar, Generic, Dict
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from pydantic.alias_generators import to_camel
from hotel_pms.models.ontology import (
    RoomStatus, RoomType, RoomCategory, BookingStatus, PaymentStatus,
    PaymentMethod, BookingSource, StaffRole
)

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True
    )


class ApiResponse(CamelModel, Generic[T]):
    """统一响应结构 {success, message?, data?}"""
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None


class Pagination(CamelModel):
    page: int
    pages: int
    total: int


# ============== 输入转换 ==============

def coerce_stay_datetime(value: Any) -> Any:
    """
    入住/离店时间统一转换为不带时区的 UTC datetime
    仅有日期时视为当天 00:00
    """
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            raise ValueError("Invalid date, expected ISO 8601 format")
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime.combine(value, time.min)

    if isinstance(value, datetime) and value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def normalize_capacity(value: Any) -> Tuple[int, Optional[int], Optional[int]]:
    """
    将容量规范化为总人数
    兼容遗留格式：整数、数字字符串、{adults, children} 对象

    Returns:
        (总人数, 成人数, 儿童数)，后两项仅用于展示
    """
    adults = children = None

    if isinstance(value, bool):
        raise ValueError("Capacity must be a number")
    if isinstance(value, dict):
        if value.get("adults") is None:
            raise ValueError("Capacity object requires 'adults'")
        adults = int(value.get("adults") or 0)
        children = int(value.get("children") or 0)
        if adults < 0 or children < 0:
            raise ValueError("Capacity values must be non-negative")
        total = adults + children
    elif isinstance(value, str):
        try:
            total = int(value.strip())
        except ValueError:
            raise ValueError(f"Invalid capacity: {value!r}")
    elif isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"Capacity must be a whole number: {value}")
        total = int(value)
    elif isinstance(value, int):
        total = value
    else:
        raise ValueError("Capacity must be a number or {adults, children}")

    if total < 1:
        raise ValueError("Capacity must be at least 1")
    return total, adults, children


def _apply_capacity(data: Any) -> Any:
    """model_validator 前置处理：把 capacity 拆成总数和展示用明细"""
    if not isinstance(data, dict) or data.get("capacity") is None:
        return data
    data = dict(data)
    total, adults, children = normalize_capacity(data["capacity"])
    data["capacity"] = total
    if adults is not None and "capacityAdults" not in data and "capacity_adults" not in data:
        data["capacity_adults"] = adults
    if children is not None and "capacityChildren" not in data and "capacity_children" not in data:
        data["capacity_children"] = children
    return data


def _reconcile_party(model: Any) -> Any:
    """给出成人数时入住人数 = 成人 + 儿童；显式给出的人数必须一致"""
    if model.adults is not None:
        total = model.adults + model.children
        if "number_of_guests" in model.model_fields_set and model.number_of_guests != total:
            raise ValueError("Number of guests must equal adults plus children")
        model.number_of_guests = total
    elif model.children >= model.number_of_guests:
        raise ValueError("A booking needs at least one adult")
    return model


# ============== 房间 Schemas ==============

class RoomCreate(CamelModel):
    room_number: str = Field(..., min_length=1, max_length=10)
    floor: int
    room_type: RoomType
    category: RoomCategory = RoomCategory.STANDARD
    capacity: int = Field(..., ge=1)
    capacity_adults: Optional[int] = Field(None, ge=0)
    capacity_children: Optional[int] = Field(None, ge=0)
    price_per_night: Decimal = Field(..., ge=0)
    description: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def normalize_capacity_input(cls, data: Any) -> Any:
        return _apply_capacity(data)


class RoomUpdate(CamelModel):
    floor: Optional[int] = None
    room_type: Optional[RoomType] = None
    category: Optional[RoomCategory] = None
    capacity: Optional[int] = Field(None, ge=1)
    capacity_adults: Optional[int] = Field(None, ge=0)
    capacity_children: Optional[int] = Field(None, ge=0)
    price_per_night: Optional[Decimal] = Field(None, ge=0)
    description: Optional[str] = None
    is_active: Optional[bool] = None

    @model_validator(mode="before")
    @classmethod
    def normalize_capacity_input(cls, data: Any) -> Any:
        return _apply_capacity(data)


class RoomStatusUpdate(CamelModel):
    status: RoomStatus


class RoomResponse(CamelModel):
    id: int
    room_number: str
    floor: int
    room_type: RoomType
    category: RoomCategory
    capacity: int
    capacity_adults: Optional[int] = None
    capacity_children: Optional[int] = None
    price_per_night: Decimal
    status: RoomStatus
    description: Optional[str] = None
    is_active: bool
    created_at: datetime


# ============== 客人 Schemas ==============

class GuestCreate(CamelModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    id_type: Optional[str] = Field(None, max_length=20)
    id_number: Optional[str] = Field(None, max_length=50)
    nationality: Optional[str] = Field(None, max_length=50)
    vip_status: bool = False
    notes: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v


class GuestUpdate(CamelModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    id_type: Optional[str] = Field(None, max_length=20)
    id_number: Optional[str] = Field(None, max_length=50)
    nationality: Optional[str] = Field(None, max_length=50)
    vip_status: Optional[bool] = None
    notes: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v


class GuestResponse(CamelModel):
    id: int
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    id_type: Optional[str] = None
    id_number: Optional[str] = None
    nationality: Optional[str] = None
    vip_status: bool
    total_stays: int
    total_spent: Decimal
    notes: Optional[str] = None
    is_active: bool
    created_at: datetime


# ============== 预订 Schemas ==============

class BookingCreate(CamelModel):
    """创建预订；房价由服务端从房间快照，客户端提交的房价被忽略"""
    guest_id: int
    room_id: int
    check_in_date: datetime
    check_out_date: datetime
    number_of_guests: int = Field(default=1, ge=1)
    adults: Optional[int] = Field(None, ge=1)
    children: int = Field(default=0, ge=0)
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0)
    tax_amount: Decimal = Field(default=Decimal("0"), ge=0)
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_method: Optional[PaymentMethod] = None
    source: BookingSource = BookingSource.DIRECT
    special_requests: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("check_in_date", "check_out_date", mode="before")
    @classmethod
    def parse_stay_dates(cls, v: Any) -> Any:
        return coerce_stay_datetime(v)

    @model_validator(mode="after")
    def reconcile_party(self) -> "BookingCreate":
        return _reconcile_party(self)


class BookingUpdate(CamelModel):
    """部分更新；状态只能通过生命周期操作变更"""
    guest_id: Optional[int] = None
    room_id: Optional[int] = None
    check_in_date: Optional[datetime] = None
    check_out_date: Optional[datetime] = None
    number_of_guests: Optional[int] = Field(None, ge=1)
    adults: Optional[int] = Field(None, ge=1)
    children: Optional[int] = Field(None, ge=0)
    discount_amount: Optional[Decimal] = Field(None, ge=0)
    tax_amount: Optional[Decimal] = Field(None, ge=0)
    paid_amount: Optional[Decimal] = Field(None, ge=0)
    payment_status: Optional[PaymentStatus] = None
    payment_method: Optional[PaymentMethod] = None
    special_requests: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("check_in_date", "check_out_date", mode="before")
    @classmethod
    def parse_stay_dates(cls, v: Any) -> Any:
        if v is None:
            return v
        return coerce_stay_datetime(v)

    @model_validator(mode="after")
    def check_party(self) -> "BookingUpdate":
        # 部分更新时缺少的明细由服务层结合原预订补齐
        parts = (self.number_of_guests, self.adults, self.children)
        if None not in parts and self.number_of_guests != self.adults + self.children:
            raise ValueError("Number of guests must equal adults plus children")
        return self


class ChargeCreate(CamelModel):
    description: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., ge=0)


class CheckOutRequest(CamelModel):
    additional_charges: List[ChargeCreate] = Field(default_factory=list)


class CancelRequest(CamelModel):
    reason: str = ""


class ChargeResponse(CamelModel):
    id: int
    description: str
    amount: Decimal
    charged_at: datetime


class BookingResponse(CamelModel):
    id: int
    booking_number: str
    guest_id: int
    guest_name: Optional[str] = None
    room_id: int
    room_number: Optional[str] = None
    check_in_date: datetime
    check_out_date: datetime
    actual_check_in_date: Optional[datetime] = None
    actual_check_out_date: Optional[datetime] = None
    number_of_guests: int
    adults: Optional[int] = None
    children: Optional[int] = None
    number_of_nights: int
    room_rate: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    paid_amount: Decimal
    booking_status: BookingStatus
    payment_status: PaymentStatus
    payment_method: Optional[PaymentMethod] = None
    source: BookingSource
    special_requests: Optional[str] = None
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancellation_date: Optional[datetime] = None
    additional_charges: List[ChargeResponse] = Field(default_factory=list)
    created_by: Optional[int] = None
    checked_in_by: Optional[int] = None
    checked_out_by: Optional[int] = None
    created_at: datetime

    @model_validator(mode="before")
    @classmethod
    def flatten_links(cls, data: Any) -> Any:
        """ORM 对象：带出客人姓名和房间号"""
        if isinstance(data, dict):
            return data
        result: Dict[str, Any] = {
            name: getattr(data, name, None)
            for name in cls.model_fields
            if name not in ("guest_name", "room_number")
        }
        guest = getattr(data, "guest", None)
        room = getattr(data, "room", None)
        result["guest_name"] = guest.name if guest is not None else None
        result["room_number"] = room.room_number if room is not None else None
        result["additional_charges"] = [
            {
                "id": charge.id,
                "description": charge.description,
                "amount": charge.amount,
                "charged_at": charge.charged_at,
            }
            for charge in (getattr(data, "additional_charges", None) or [])
        ]
        return result


class BookingListResponse(CamelModel):
    success: bool = True
    data: List[BookingResponse]
    pagination: Pagination


class CheckOutResponse(CamelModel):
    success: bool = True
    message: Optional[str] = None
    data: BookingResponse
    additional_charges: Decimal = Decimal("0")


# ============== 公开预订 Schemas ==============

class PublicGuestInfo(CamelModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., max_length=100)
    phone: Optional[str] = Field(None, max_length=30)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v


class PublicReservationCreate(CamelModel):
    guest: PublicGuestInfo
    room_id: int
    check_in_date: datetime
    check_out_date: datetime
    number_of_guests: int = Field(default=1, ge=1)
    adults: Optional[int] = Field(None, ge=1)
    children: int = Field(default=0, ge=0)
    special_requests: Optional[str] = None

    @field_validator("check_in_date", "check_out_date", mode="before")
    @classmethod
    def parse_stay_dates(cls, v: Any) -> Any:
        return coerce_stay_datetime(v)

    @model_validator(mode="after")
    def reconcile_party(self) -> "PublicReservationCreate":
        return _reconcile_party(self)


class PublicCancelRequest(CamelModel):
    email: str
    reason: Optional[str] = None


class PublicReservationView(CamelModel):
    """公开查询视图，不含内部字段"""
    booking_number: str
    booking_status: BookingStatus
    guest_name: str
    room_number: str
    room_type: RoomType
    check_in_date: datetime
    check_out_date: datetime
    number_of_nights: int
    number_of_guests: int
    total_amount: Decimal
    special_requests: Optional[str] = None


# ============== 员工 / 认证 Schemas ==============

class StaffResponse(CamelModel):
    id: int
    username: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    role: StaffRole
    is_active: bool


class LoginRequest(CamelModel):
    username: str
    password: str


class LoginResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
    staff: StaffResponse
