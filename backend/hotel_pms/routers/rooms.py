"""
房间管理路由
"""
from typing import Any, List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from hotel_pms.database import get_db
from hotel_pms.exceptions import ValidationError
from hotel_pms.models.ontology import Staff, RoomStatus, RoomType
from hotel_pms.models.schemas import (
    ApiResponse, RoomCreate, RoomUpdate, RoomStatusUpdate, RoomResponse, coerce_stay_datetime
)
from hotel_pms.security import permissions as perm
from hotel_pms.security.auth import require_permission
from hotel_pms.services.room_service import RoomService

router = APIRouter(prefix="/rooms", tags=["房间管理"])


def parse_stay_query(value: Optional[str], name: str) -> Any:
    """查询参数中的入住/离店日期"""
    if not value:
        raise ValidationError("Check-in and check-out dates are required")
    try:
        return coerce_stay_datetime(value)
    except ValueError:
        raise ValidationError(f"Invalid {name} date")


@router.get("", response_model=ApiResponse[List[RoomResponse]])
def list_rooms(
    room_status: Optional[RoomStatus] = Query(None, alias="status"),
    room_type: Optional[RoomType] = Query(None, alias="type"),
    floor: Optional[int] = None,
    include_inactive: bool = Query(False, alias="includeInactive"),
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perm.ROOM_READ))
):
    """获取房间列表"""
    rooms = RoomService(db).get_rooms(
        status=room_status, room_type=room_type, floor=floor,
        is_active=None if include_inactive else True
    )
    return ApiResponse(data=[RoomResponse.model_validate(r) for r in rooms])


@router.get("/available", response_model=ApiResponse[List[RoomResponse]])
def list_available_rooms(
    check_in: Optional[str] = Query(None, alias="checkIn"),
    check_out: Optional[str] = Query(None, alias="checkOut"),
    capacity: Optional[int] = None,
    room_type: Optional[RoomType] = Query(None, alias="type"),
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perm.ROOM_READ))
):
    """查询指定日期可预订的房间"""
    rooms = RoomService(db).get_available_rooms(
        parse_stay_query(check_in, "check-in"),
        parse_stay_query(check_out, "check-out"),
        capacity=capacity, room_type=room_type
    )
    return ApiResponse(data=[RoomResponse.model_validate(r) for r in rooms])


@router.get("/{room_id}", response_model=ApiResponse[RoomResponse])
def get_room(
    room_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perm.ROOM_READ))
):
    room = RoomService(db).require_room(room_id)
    return ApiResponse(data=RoomResponse.model_validate(room))


@router.post("", response_model=ApiResponse[RoomResponse], status_code=status.HTTP_201_CREATED)
def create_room(
    data: RoomCreate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perm.ROOM_WRITE))
):
    """创建房间"""
    room = RoomService(db).create_room(data)
    return ApiResponse(message="Room created successfully", data=RoomResponse.model_validate(room))


@router.put("/{room_id}", response_model=ApiResponse[RoomResponse])
def update_room(
    room_id: int,
    data: RoomUpdate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perm.ROOM_WRITE))
):
    """更新房间"""
    room = RoomService(db).update_room(room_id, data)
    return ApiResponse(message="Room updated successfully", data=RoomResponse.model_validate(room))


@router.patch("/{room_id}/status", response_model=ApiResponse[RoomResponse])
def update_room_status(
    room_id: int,
    data: RoomStatusUpdate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perm.ROOM_STATUS))
):
    """修改房态"""
    room = RoomService(db).update_room_status(room_id, data.status, changed_by=current_user.id)
    return ApiResponse(message="Room status updated", data=RoomResponse.model_validate(room))


@router.delete("/{room_id}", response_model=ApiResponse[RoomResponse])
def delete_room(
    room_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perm.ROOM_WRITE))
):
    """停用房间（软删除）"""
    room = RoomService(db).delete_room(room_id)
    return ApiResponse(message="Room deleted successfully", data=RoomResponse.model_validate(room))
