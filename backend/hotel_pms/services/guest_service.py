"""
客人服务 - 客人目录
管理 Guest 对象；累计入住次数和消费金额只由预订生命周期修改
"""
from decimal import Decimal
from typing import List, Optional
import logging
from sqlalchemy import or_, desc
from sqlalchemy.orm import Session
from hotel_pms.exceptions import NotFound, Conflict
from hotel_pms.models.ontology import Guest
from hotel_pms.models.schemas import GuestCreate, GuestUpdate, PublicGuestInfo

logger = logging.getLogger(__name__)


class GuestService:
    """客人服务"""

    def __init__(self, db: Session):
        self.db = db

    def get_guests(self, search: Optional[str] = None,
                   is_active: Optional[bool] = True,
                   limit: int = 100) -> List[Guest]:
        """获取客人列表，支持按姓名/邮箱/电话/证件号搜索"""
        query = self.db.query(Guest)

        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    Guest.first_name.like(pattern),
                    Guest.last_name.like(pattern),
                    Guest.email.like(pattern),
                    Guest.phone.like(pattern),
                    Guest.id_number.like(pattern)
                )
            )
        if is_active is not None:
            query = query.filter(Guest.is_active == is_active)

        return query.order_by(desc(Guest.created_at), desc(Guest.id)).limit(limit).all()

    def get_guest(self, guest_id: int) -> Optional[Guest]:
        return self.db.query(Guest).filter(Guest.id == guest_id).first()

    def get_guest_by_email(self, email: str) -> Optional[Guest]:
        return self.db.query(Guest).filter(Guest.email == email.strip().lower()).first()

    def require_guest(self, guest_id: int) -> Guest:
        guest = self.get_guest(guest_id)
        if not guest:
            raise NotFound("Guest not found", guest_id=guest_id)
        return guest

    def _check_unique(self, email: Optional[str], id_number: Optional[str],
                      exclude_id: Optional[int] = None) -> None:
        """邮箱、证件号唯一"""
        if email:
            existing = self.get_guest_by_email(email)
            if existing and existing.id != exclude_id:
                raise Conflict("A guest with this email already exists")
        if id_number:
            existing = self.db.query(Guest).filter(Guest.id_number == id_number).first()
            if existing and existing.id != exclude_id:
                raise Conflict("A guest with this ID number already exists")

    def create_guest(self, data: GuestCreate) -> Guest:
        self._check_unique(data.email, data.id_number)
        guest = Guest(**data.model_dump())
        self.db.add(guest)
        self.db.commit()
        self.db.refresh(guest)
        return guest

    def update_guest(self, guest_id: int, data: GuestUpdate) -> Guest:
        guest = self.require_guest(guest_id)
        update_data = data.model_dump(exclude_unset=True)
        self._check_unique(update_data.get("email"), update_data.get("id_number"),
                           exclude_id=guest_id)

        for key, value in update_data.items():
            setattr(guest, key, value)

        self.db.commit()
        self.db.refresh(guest)
        return guest

    def delete_guest(self, guest_id: int) -> Guest:
        """软删除"""
        guest = self.require_guest(guest_id)
        guest.is_active = False
        self.db.commit()
        self.db.refresh(guest)
        return guest

    def find_or_create(self, info: PublicGuestInfo) -> Guest:
        """
        按邮箱查找客人，不存在则新建（公开预订渠道使用）
        只 flush 不提交，与预订在同一事务内
        """
        guest = self.get_guest_by_email(info.email)
        if guest:
            if info.phone and not guest.phone:
                guest.phone = info.phone
            return guest

        guest = Guest(
            first_name=info.first_name,
            last_name=info.last_name,
            email=info.email,
            phone=info.phone
        )
        self.db.add(guest)
        self.db.flush()
        logger.info("Guest %s created from public reservation", guest.email)
        return guest

    # ============== 累计统计（生命周期调用，不提交） ==============

    @staticmethod
    def record_stay(guest: Guest) -> None:
        guest.total_stays = (guest.total_stays or 0) + 1

    @staticmethod
    def record_spending(guest: Guest, amount: Decimal) -> None:
        guest.total_spent = (guest.total_spent or Decimal("0")) + amount
