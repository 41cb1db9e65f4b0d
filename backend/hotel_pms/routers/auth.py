"""
认证路由
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from hotel_pms.database import get_db
from hotel_pms.models.ontology import Staff
from hotel_pms.models.schemas import ApiResponse, LoginRequest, LoginResponse, StaffResponse
from hotel_pms.services.staff_service import StaffService
from hotel_pms.security.auth import get_current_user

router = APIRouter(prefix="/auth", tags=["认证"])


@router.post("/login", response_model=LoginResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    """员工登录"""
    service = StaffService(db)
    try:
        result = service.authenticate(data.username, data.password)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    if not result:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password"
        )
    return LoginResponse(
        access_token=result["access_token"],
        token_type=result["token_type"],
        staff=StaffResponse.model_validate(result["staff"])
    )


@router.get("/me", response_model=ApiResponse[StaffResponse])
def get_current_user_info(current_user: Staff = Depends(get_current_user)):
    """获取当前员工信息"""
    return ApiResponse(data=StaffResponse.model_validate(current_user))
