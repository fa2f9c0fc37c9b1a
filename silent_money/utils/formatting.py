"""Indian Rupee formatting used in projections and notifications."""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

Number = Union[int, float, Decimal]

CRORE = Decimal("10000000")
LAKH = Decimal("100000")
THOUSAND = Decimal("1000")


def _one_decimal(value: Decimal) -> str:
    return str(value.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def format_inr_short(value: Optional[Number]) -> str:
    """
    Compact rupee amount: crore, lakh or thousand suffix.

        >>> format_inr_short(25000000)
        '₹2.5Cr'
        >>> format_inr_short(450000)
        '₹4.5L'
        >>> format_inr_short(15000)
        '₹15k'
        >>> format_inr_short(None)
        'N/A'
    """
    if value is None or value == 0:
        return "N/A"
    amount = Decimal(str(value))
    sign = "-" if amount < 0 else ""
    amount = abs(amount)
    if amount >= CRORE:
        return f"{sign}₹{_one_decimal(amount / CRORE)}Cr"
    if amount >= LAKH:
        return f"{sign}₹{_one_decimal(amount / LAKH)}L"
    if amount >= THOUSAND:
        thousands = (amount / THOUSAND).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return f"{sign}₹{thousands}k"
    return f"{sign}₹{amount.quantize(Decimal('1'), rounding=ROUND_HALF_UP)}"


def format_inr(value: Optional[Number]) -> str:
    """
    Full rupee amount with Indian digit grouping (last three, then pairs).

        >>> format_inr(1234567)
        '₹12,34,567'
    """
    if value is None:
        return "N/A"
    amount = Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    digits = str(abs(amount))
    if len(digits) > 3:
        head, tail = digits[:-3], digits[-3:]
        pairs = []
        while len(head) > 2:
            pairs.insert(0, head[-2:])
            head = head[:-2]
        if head:
            pairs.insert(0, head)
        digits = ",".join(pairs + [tail])
    return f"{sign}₹{digits}"
