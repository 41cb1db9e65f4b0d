"""
价格派生 - 纯函数
根据房价快照、入住区间、税费、折扣和附加费用计算晚数与总额
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Union

from hotel_pms.exceptions import ValidationError

Money = Union[Decimal, int, float, str]

ONE_DAY = timedelta(days=1)
CENT = Decimal("0.01")


@dataclass(frozen=True)
class PriceBreakdown:
    """价格派生结果"""
    number_of_nights: int
    room_subtotal: Decimal
    charges_total: Decimal
    total_amount: Decimal


def to_money(value: Optional[Money]) -> Decimal:
    """转换为两位小数的 Decimal，None 视为 0"""
    if value is None:
        return Decimal("0.00")
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def count_nights(check_in: datetime, check_out: datetime) -> int:
    """
    入住晚数，不足一天按一晚计（向上取整）

    调用方必须保证 check_in < check_out
    """
    if check_out <= check_in:
        raise ValidationError("Check-out date must be after check-in date")
    days, remainder = divmod(check_out - check_in, ONE_DAY)
    return days + (1 if remainder else 0)


def sum_charges(charges: Optional[Iterable]) -> Decimal:
    """附加费用合计；元素可以是金额，也可以是带 amount 的对象或字典"""
    total = Decimal("0.00")
    for charge in charges or []:
        if isinstance(charge, dict):
            amount = charge.get("amount")
        else:
            amount = getattr(charge, "amount", charge)
        total += to_money(amount)
    return total


def derive(
    room_rate: Money,
    check_in: datetime,
    check_out: datetime,
    tax_amount: Optional[Money] = None,
    discount_amount: Optional[Money] = None,
    additional_charges: Optional[Iterable] = None,
) -> PriceBreakdown:
    """
    派生晚数与总额

    total = rate * nights + tax - discount + sum(charges)，结果不小于 0
    """
    nights = count_nights(check_in, check_out)
    rate = to_money(room_rate)
    subtotal = (rate * nights).quantize(CENT, rounding=ROUND_HALF_UP)
    charges_total = sum_charges(additional_charges)

    total = subtotal + to_money(tax_amount) - to_money(discount_amount) + charges_total
    if total < 0:
        total = Decimal("0.00")

    return PriceBreakdown(
        number_of_nights=nights,
        room_subtotal=subtotal,
        charges_total=charges_total,
        total_amount=total,
    )
