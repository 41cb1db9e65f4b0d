"""
权限码与角色策略表

所有授权判断只通过 authorize(principal, action)，路由中不再出现角色字符串判断。
"""
from typing import Dict, FrozenSet, Optional
from hotel_pms.models.ontology import Staff, StaffRole

# 预订
BOOKING_READ = "booking:read"
BOOKING_CREATE = "booking:create"
BOOKING_EDIT = "booking:edit"
BOOKING_CHECKIN = "booking:checkin"
BOOKING_CHECKOUT = "booking:checkout"
BOOKING_CANCEL = "booking:cancel"

# 房间
ROOM_READ = "room:read"
ROOM_WRITE = "room:write"
ROOM_STATUS = "room:status"

# 客人
GUEST_READ = "guest:read"
GUEST_WRITE = "guest:write"

_FRONT_DESK = frozenset({StaffRole.MANAGER, StaffRole.RECEPTIONIST})
_ALL_STAFF = frozenset({
    StaffRole.MANAGER, StaffRole.RECEPTIONIST,
    StaffRole.HOUSEKEEPING, StaffRole.MAINTENANCE
})

# 权限码 -> 允许的角色；admin 不在表中，始终通过
ROLE_POLICY: Dict[str, FrozenSet[StaffRole]] = {
    BOOKING_READ: _FRONT_DESK,
    BOOKING_CREATE: _FRONT_DESK,
    BOOKING_EDIT: _FRONT_DESK,
    BOOKING_CHECKIN: _FRONT_DESK,
    BOOKING_CHECKOUT: _FRONT_DESK,
    BOOKING_CANCEL: _FRONT_DESK,
    ROOM_READ: _ALL_STAFF,
    ROOM_WRITE: frozenset({StaffRole.MANAGER}),
    ROOM_STATUS: _ALL_STAFF,
    GUEST_READ: _FRONT_DESK,
    GUEST_WRITE: _FRONT_DESK,
}


def authorize(principal: Optional[Staff], action: str) -> bool:
    """判断员工是否可以执行某个操作；未知权限码一律拒绝"""
    if principal is None or not principal.is_active:
        return False
    if principal.role == StaffRole.ADMIN:
        return True
    return principal.role in ROLE_POLICY.get(action, frozenset())
