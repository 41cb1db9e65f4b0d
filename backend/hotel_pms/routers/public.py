"""
公开预订路由（无需登录）
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from hotel_pms.database import get_db
from hotel_pms.models.schemas import (
    ApiResponse, PublicReservationCreate, PublicCancelRequest, PublicReservationView, RoomResponse
)
from hotel_pms.routers.rooms import parse_stay_query
from hotel_pms.services.public_reservation_service import PublicReservationService

router = APIRouter(prefix="/public", tags=["公开预订"])


@router.get("/rooms/available", response_model=ApiResponse[List[RoomResponse]])
def list_available_rooms(
    check_in: Optional[str] = Query(None, alias="checkIn"),
    check_out: Optional[str] = Query(None, alias="checkOut"),
    guests: Optional[int] = None,
    db: Session = Depends(get_db)
):
    rooms = PublicReservationService(db).get_available_rooms(
        parse_stay_query(check_in, "check-in"),
        parse_stay_query(check_out, "check-out"),
        capacity=guests
    )
    return ApiResponse(data=[RoomResponse.model_validate(r) for r in rooms])


@router.post("/reservations", response_model=ApiResponse[PublicReservationView],
             status_code=status.HTTP_201_CREATED)
def create_reservation(data: PublicReservationCreate, db: Session = Depends(get_db)):
    """在线预订"""
    service = PublicReservationService(db)
    booking = service.create_reservation(data)
    return ApiResponse(message="Reservation created successfully", data=service.to_view(booking))


@router.get("/reservations/{booking_number}", response_model=ApiResponse[PublicReservationView])
def get_reservation(booking_number: str, db: Session = Depends(get_db)):
    """按预订号查询"""
    service = PublicReservationService(db)
    return ApiResponse(data=service.to_view(service.get_reservation(booking_number)))


@router.post("/reservations/{booking_number}/cancel", response_model=ApiResponse[PublicReservationView])
def cancel_reservation(booking_number: str, data: PublicCancelRequest, db: Session = Depends(get_db)):
    """客人自助取消，需校验邮箱"""
    service = PublicReservationService(db)
    booking = service.cancel_reservation(booking_number, data.email, data.reason)
    return ApiResponse(message="Reservation cancelled successfully", data=service.to_view(booking))
