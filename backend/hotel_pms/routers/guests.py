"""
客人管理路由
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from hotel_pms.database import get_db
from hotel_pms.models.ontology import Staff
from hotel_pms.models.schemas import ApiResponse, GuestCreate, GuestUpdate, GuestResponse
from hotel_pms.security import permissions as perm
from hotel_pms.security.auth import require_permission
from hotel_pms.services.guest_service import GuestService

router = APIRouter(prefix="/guests", tags=["客人管理"])


@router.get("", response_model=ApiResponse[List[GuestResponse]])
def list_guests(
    search: Optional[str] = None,
    include_inactive: bool = Query(False, alias="includeInactive"),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perm.GUEST_READ))
):
    """获取客人列表"""
    guests = GuestService(db).get_guests(
        search=search, is_active=None if include_inactive else True, limit=limit
    )
    return ApiResponse(data=[GuestResponse.model_validate(g) for g in guests])


@router.get("/{guest_id}", response_model=ApiResponse[GuestResponse])
def get_guest(
    guest_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perm.GUEST_READ))
):
    guest = GuestService(db).require_guest(guest_id)
    return ApiResponse(data=GuestResponse.model_validate(guest))


@router.post("", response_model=ApiResponse[GuestResponse], status_code=status.HTTP_201_CREATED)
def create_guest(
    data: GuestCreate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perm.GUEST_WRITE))
):
    guest = GuestService(db).create_guest(data)
    return ApiResponse(message="Guest created successfully", data=GuestResponse.model_validate(guest))


@router.put("/{guest_id}", response_model=ApiResponse[GuestResponse])
def update_guest(
    guest_id: int,
    data: GuestUpdate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perm.GUEST_WRITE))
):
    guest = GuestService(db).update_guest(guest_id, data)
    return ApiResponse(message="Guest updated successfully", data=GuestResponse.model_validate(guest))


@router.delete("/{guest_id}", response_model=ApiResponse[GuestResponse])
def delete_guest(
    guest_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perm.GUEST_WRITE))
):
    """停用客人（软删除）"""
    guest = GuestService(db).delete_guest(guest_id)
    return ApiResponse(message="Guest deleted successfully", data=GuestResponse.model_validate(guest))
