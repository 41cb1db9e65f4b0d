"""
预订管理路由
业务异常由 main 中注册的异常处理器统一转换为响应
"""
from typing import List, Optional
from datetime import datetime
from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session
from hotel_pms.database import get_db
from hotel_pms.models.ontology import Staff, BookingStatus
from hotel_pms.models.schemas import (
    ApiResponse, BookingCreate, BookingUpdate, BookingResponse, BookingListResponse,
    CancelRequest, CheckOutRequest, CheckOutResponse, Pagination
)
from hotel_pms.security import permissions as perm
from hotel_pms.security.auth import require_permission
from hotel_pms.services.booking_service import BookingService

router = APIRouter(prefix="/bookings", tags=["预订管理"])

DEFAULT_DELETE_REASON = "Deleted by staff"


@router.get("", response_model=BookingListResponse)
def list_bookings(
    booking_status: Optional[BookingStatus] = Query(None, alias="status"),
    room_id: Optional[int] = Query(None, alias="roomId"),
    guest_id: Optional[int] = Query(None, alias="guestId"),
    check_in_from: Optional[datetime] = Query(None, alias="checkInFrom"),
    check_in_to: Optional[datetime] = Query(None, alias="checkInTo"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perm.BOOKING_READ))
):
    """获取预订列表（分页）"""
    service = BookingService(db)
    bookings, pagination = service.list_bookings(
        page=page, limit=limit, status=booking_status, room_id=room_id,
        guest_id=guest_id, check_in_from=check_in_from, check_in_to=check_in_to
    )
    return BookingListResponse(
        data=[BookingResponse.model_validate(b) for b in bookings],
        pagination=Pagination(**pagination)
    )


@router.get("/today-arrivals", response_model=ApiResponse[List[BookingResponse]])
def get_today_arrivals(
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perm.BOOKING_READ))
):
    """今日预抵"""
    bookings = BookingService(db).get_today_arrivals()
    return ApiResponse(data=[BookingResponse.model_validate(b) for b in bookings])


@router.get("/today-departures", response_model=ApiResponse[List[BookingResponse]])
def get_today_departures(
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perm.BOOKING_READ))
):
    """今日预离"""
    bookings = BookingService(db).get_today_departures()
    return ApiResponse(data=[BookingResponse.model_validate(b) for b in bookings])


@router.get("/number/{booking_number}", response_model=ApiResponse[BookingResponse])
def get_booking_by_number(
    booking_number: str,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perm.BOOKING_READ))
):
    booking = BookingService(db).get_booking_by_number(booking_number)
    return ApiResponse(data=BookingResponse.model_validate(booking))


@router.get("/{booking_id}", response_model=ApiResponse[BookingResponse])
def get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perm.BOOKING_READ))
):
    """获取预订详情"""
    booking = BookingService(db).get_booking(booking_id)
    return ApiResponse(data=BookingResponse.model_validate(booking))


@router.post("", response_model=ApiResponse[BookingResponse], status_code=status.HTTP_201_CREATED)
def create_booking(
    data: BookingCreate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perm.BOOKING_CREATE))
):
    """创建预订"""
    booking = BookingService(db).create_booking(data, created_by=current_user.id)
    return ApiResponse(
        message="Booking created successfully",
        data=BookingResponse.model_validate(booking)
    )


@router.put("/{booking_id}", response_model=ApiResponse[BookingResponse])
def update_booking(
    booking_id: int,
    data: BookingUpdate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perm.BOOKING_EDIT))
):
    """修改预订"""
    booking = BookingService(db).update_booking(booking_id, data, updated_by=current_user.id)
    return ApiResponse(
        message="Booking updated successfully",
        data=BookingResponse.model_validate(booking)
    )


@router.post("/{booking_id}/checkin", response_model=ApiResponse[BookingResponse])
def check_in(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perm.BOOKING_CHECKIN))
):
    """办理入住"""
    booking = BookingService(db).check_in(booking_id, checked_in_by=current_user.id)
    return ApiResponse(
        message="Guest checked in successfully",
        data=BookingResponse.model_validate(booking)
    )


@router.post("/{booking_id}/checkout", response_model=CheckOutResponse)
def check_out(
    booking_id: int,
    data: Optional[CheckOutRequest] = Body(None),
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perm.BOOKING_CHECKOUT))
):
    """办理退房，可附带附加费用"""
    charges = data.additional_charges if data else []
    booking, charges_total = BookingService(db).check_out(
        booking_id, checked_out_by=current_user.id, additional_charges=charges
    )
    return CheckOutResponse(
        message="Guest checked out successfully",
        data=BookingResponse.model_validate(booking),
        additional_charges=charges_total
    )


@router.post("/{booking_id}/cancel", response_model=ApiResponse[BookingResponse])
def cancel_booking(
    booking_id: int,
    data: CancelRequest,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perm.BOOKING_CANCEL))
):
    """取消预订，必须填写原因"""
    booking = BookingService(db).cancel_booking(booking_id, data.reason, cancelled_by=current_user.id)
    return ApiResponse(
        message="Booking cancelled successfully",
        data=BookingResponse.model_validate(booking)
    )


@router.post("/{booking_id}/no-show", response_model=ApiResponse[BookingResponse])
def mark_no_show(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perm.BOOKING_CANCEL))
):
    """标记未到"""
    booking = BookingService(db).mark_no_show(booking_id, marked_by=current_user.id)
    return ApiResponse(
        message="Booking marked as no-show",
        data=BookingResponse.model_validate(booking)
    )


@router.delete("/{booking_id}", response_model=ApiResponse[BookingResponse])
def delete_booking(
    booking_id: int,
    reason: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perm.BOOKING_CANCEL))
):
    """删除即取消，不物理删除"""
    booking = BookingService(db).cancel_booking(
        booking_id, reason or DEFAULT_DELETE_REASON, cancelled_by=current_user.id
    )
    return ApiResponse(
        message="Booking cancelled successfully",
        data=BookingResponse.model_validate(booking)
    )
