"""
Payout and rating arithmetic for completed pickups.

All money here is in roubles as ``Decimal`` rounded to kopecks; orders store
amounts in kopecks (see ``order_amount_minor``).
"""

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

# ── Tariff constants ──────────────────────────────────────
MINIMUM_ORDER_AMOUNT = 100          # roubles
MAXIMUM_ORDER_AMOUNT = 100_000      # roubles
COMMISSION_RATE = Decimal("0.15")
MINIMUM_COMMISSION = Decimal("20")

_CENTS = Decimal("0.01")


@dataclass
class Payout:
    total: Decimal
    commission: Decimal
    earnings: Decimal


def _money(value: Decimal) -> Decimal:
    return value.quantize(_CENTS, rounding=ROUND_HALF_UP)


def calculate_payout(amount_minor: int) -> Payout:
    """
    Split an order amount between the service and the performer.

    commission = max(20, total * 0.15), earnings = total - commission.
    """
    total = _money(Decimal(amount_minor) / 100)
    commission = _money(max(MINIMUM_COMMISSION, total * COMMISSION_RATE))
    return Payout(total=total, commission=commission, earnings=_money(total - commission))


def next_rating(average: Decimal, count: int, rating: int) -> tuple[Decimal, int]:
    """Fold one more rating into a running average (2 decimal places)."""
    new_count = count + 1
    new_average = (Decimal(average) * count + rating) / new_count
    return _money(new_average), new_count


def parse_amount(text: str) -> int | None:
    """
    Read a rouble amount typed by the customer.

    Non-digits are stripped ("150 руб" -> 150). Returns None for empty input
    and for anything outside the minimum..maximum order range.
    """
    digits = re.sub(r"\D", "", text or "")
    if not digits:
        return None
    amount = int(digits)
    if not MINIMUM_ORDER_AMOUNT <= amount <= MAXIMUM_ORDER_AMOUNT:
        return None
    return amount


def order_amount_minor(amount: int | None) -> int:
    """Stored order amount in kopecks, never below the minimum order."""
    return max(MINIMUM_ORDER_AMOUNT, amount or 0) * 100


def size_option_for(bag_count: int) -> str:
    if bag_count <= 1:
        return "one_bag"
    if bag_count == 2:
        return "two_bags"
    return "three_bags"
