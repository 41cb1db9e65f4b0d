"""
员工服务
员工账号认证；账号管理本身是普通增删改查，只保留登录和初始化所需的部分
"""
from typing import Optional
from sqlalchemy.orm import Session
from hotel_pms.exceptions import Conflict
from hotel_pms.models.ontology import Staff, StaffRole
from hotel_pms.security.auth import get_password_hash, verify_password, create_access_token


class StaffService:
    """员工服务"""

    def __init__(self, db: Session):
        self.db = db

    def get_staff(self, staff_id: int) -> Optional[Staff]:
        return self.db.query(Staff).filter(Staff.id == staff_id).first()

    def get_staff_by_username(self, username: str) -> Optional[Staff]:
        return self.db.query(Staff).filter(Staff.username == username).first()

    def create_staff(self, username: str, password: str, first_name: str,
                     role: StaffRole, last_name: str = "",
                     email: Optional[str] = None) -> Staff:
        if self.get_staff_by_username(username):
            raise Conflict(f"Username {username} already exists")

        staff = Staff(
            username=username,
            password_hash=get_password_hash(password),
            first_name=first_name,
            last_name=last_name,
            email=email,
            role=role
        )
        self.db.add(staff)
        self.db.commit()
        self.db.refresh(staff)
        return staff

    def authenticate(self, username: str, password: str) -> Optional[dict]:
        """
        认证登录

        Returns:
            {access_token, token_type, staff}，用户名或密码错误时返回 None

        Raises:
            ValueError: 账号已停用
        """
        staff = self.get_staff_by_username(username)
        if not staff:
            return None

        if not staff.is_active:
            raise ValueError("Account is disabled")

        if not verify_password(password, staff.password_hash):
            return None

        return {
            'access_token': create_access_token(staff.id, staff.role),
            'token_type': 'bearer',
            'staff': staff
        }
