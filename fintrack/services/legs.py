from decimal import Decimal

from fintrack.models.account import ASSET
from fintrack.utils.money import ZERO


def outgoing_balance(kind: str, balance: Decimal, amount: Decimal) -> Decimal:
    # moving value out of a debt account draws more against it
    if kind == ASSET:
        return balance - amount
    return balance + amount


def incoming_balance(kind: str, balance: Decimal, amount: Decimal) -> Decimal:
    if kind == ASSET:
        return balance + amount
    return max(ZERO, balance - amount)
