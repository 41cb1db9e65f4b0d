"""
初始化数据脚本
创建：员工账号、房间

默认账号（密码均为 123456）：
  admin          系统管理员
  manager        经理
  front1         前台
  housekeeper1   客房清洁
  engineer1      工程维修
"""
from decimal import Decimal
from hotel_pms.database import SessionLocal, init_db
from hotel_pms.models.ontology import (
    Room, RoomStatus, RoomType, RoomCategory, Staff, StaffRole
)
from hotel_pms.services.staff_service import StaffService

DEFAULT_PASSWORD = "123456"

STAFF_ACCOUNTS = [
    ('admin', 'System', 'Admin', StaffRole.ADMIN),
    ('manager', 'Mia', 'Manager', StaffRole.MANAGER),
    ('front1', 'Felix', 'Desk', StaffRole.RECEPTIONIST),
    ('housekeeper1', 'Hana', 'Keeper', StaffRole.HOUSEKEEPING),
    ('engineer1', 'Evan', 'Fixer', StaffRole.MAINTENANCE),
]

# 房型 -> (档次, 容量, 房价)
ROOM_TYPE_DEFAULTS = {
    RoomType.SINGLE: (RoomCategory.ECONOMY, 1, Decimal('79.00')),
    RoomType.DOUBLE: (RoomCategory.STANDARD, 2, Decimal('119.00')),
    RoomType.TRIPLE: (RoomCategory.STANDARD, 3, Decimal('149.00')),
    RoomType.SUITE: (RoomCategory.PREMIUM, 4, Decimal('259.00')),
    RoomType.DELUXE: (RoomCategory.LUXURY, 2, Decimal('329.00')),
    RoomType.PRESIDENTIAL: (RoomCategory.LUXURY, 6, Decimal('899.00')),
}

# 楼层 -> 房型列表（按房号顺序）
FLOOR_LAYOUT = {
    1: [RoomType.SINGLE] * 4 + [RoomType.DOUBLE] * 6,
    2: [RoomType.DOUBLE] * 6 + [RoomType.TRIPLE] * 4,
    3: [RoomType.SUITE] * 3 + [RoomType.DELUXE] * 3,
    4: [RoomType.PRESIDENTIAL],
}


def init_staff(db):
    """初始化员工账号"""
    service = StaffService(db)
    created = 0
    for username, first_name, last_name, role in STAFF_ACCOUNTS:
        if service.get_staff_by_username(username):
            continue
        service.create_staff(
            username, DEFAULT_PASSWORD, first_name, role,
            last_name=last_name, email=f"{username}@hotel.local"
        )
        created += 1
    print(f"员工初始化完成: 新增 {created} 人，共 {db.query(Staff).count()} 人")


def init_rooms(db):
    """初始化房间"""
    created = 0
    for floor, room_types in FLOOR_LAYOUT.items():
        for index, room_type in enumerate(room_types, start=1):
            room_number = f"{floor}{index:02d}"
            if db.query(Room).filter(Room.room_number == room_number).first():
                continue
            category, capacity, price = ROOM_TYPE_DEFAULTS[room_type]
            db.add(Room(
                room_number=room_number,
                floor=floor,
                room_type=room_type,
                category=category,
                capacity=capacity,
                price_per_night=price,
                status=RoomStatus.AVAILABLE
            ))
            created += 1
    db.commit()
    print(f"房间初始化完成: 新增 {created} 间，共 {db.query(Room).count()} 间")


def main():
    """主函数"""
    print("=" * 50)
    print("Hotel PMS 初始化数据")
    print("=" * 50)

    init_db()
    print("数据库表创建完成")

    db = SessionLocal()
    try:
        init_staff(db)
        init_rooms(db)

        print("=" * 50)
        print("初始化完成！")
        print(f"默认账号（密码均为 {DEFAULT_PASSWORD}）：")
        for username, _, _, role in STAFF_ACCOUNTS:
            print(f"  {role.value:<14}{username}")
        print("=" * 50)
    finally:
        db.close()


if __name__ == '__main__':
    main()
