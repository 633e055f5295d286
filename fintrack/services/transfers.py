from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import select, or_
from sqlalchemy.orm import Session

from fintrack.core.errors import AccountNotFound, ValidationError
from fintrack.models.account import Account, ASSET, REVOLVING_CREDIT
from fintrack.models.transfer import Transfer
from fintrack.services.ledger import refresh_balance
from fintrack.services.legs import incoming_balance, outgoing_balance
from fintrack.utils.money import d2, to_dec
from fintrack.utils.timezone import today_local


def apply_transfer(
    from_kind: str,
    from_balance: Decimal,
    to_kind: str,
    to_balance: Decimal,
    amount: Decimal,
) -> tuple[Decimal, Decimal]:
    return (
        d2(outgoing_balance(from_kind, from_balance, amount)),
        d2(incoming_balance(to_kind, to_balance, amount)),
    )


def credit_headroom(account: Account) -> Decimal:
    return to_dec(account.credit_limit) - to_dec(account.balance)


def validate_transfer(src: Account | None, dst: Account | None, amount: Decimal) -> None:
    if src is None or dst is None:
        raise AccountNotFound()
    if src.id == dst.id:
        raise ValidationError("same_account", "cannot transfer to the same account")
    if amount <= 0:
        raise ValidationError("amount_not_positive", "amount must be greater than zero")

    if src.kind == ASSET and to_dec(src.balance) < amount:
        raise ValidationError("insufficient_balance", "insufficient balance in source account")
    if src.kind == REVOLVING_CREDIT and credit_headroom(src) < amount:
        raise ValidationError("insufficient_credit", "insufficient credit available in source account")


def _lock_account(s: Session, user_id: int, account_id: int) -> Account | None:
    return s.execute(
        select(Account).where(Account.id == account_id, Account.user_id == user_id).with_for_update()
    ).scalar_one_or_none()


def create_transfer(
    s: Session,
    user_id: int,
    from_account_id: int,
    to_account_id: int,
    amount,
    description: str = "",
    day: date | None = None,
) -> Transfer:
    """Move value between two accounts of one user.

    Validation runs on the balances as they stand; the new balances are then
    replayed with the transfer row in place, so a leg dated before later
    entries lands in the same place a full recompute would put it. Both
    balances and the row commit together.
    """
    amount = d2(to_dec(amount))
    try:
        src = _lock_account(s, user_id, from_account_id)
        dst = src if to_account_id == from_account_id else _lock_account(s, user_id, to_account_id)
        validate_transfer(src, dst, amount)

        tr = Transfer(
            user_id=user_id,
            from_account_id=src.id,
            to_account_id=dst.id,
            amount=amount,
            date=day or today_local(),
            description=(description or "").strip(),
        )
        s.add(tr)
        refresh_balance(s, user_id, src.id)
        refresh_balance(s, user_id, dst.id)
        s.commit()
    except Exception:
        s.rollback()
        raise

    s.refresh(tr)
    return tr


def list_transfers(s: Session, user_id: int, account_id: int | None = None) -> list[Transfer]:
    q = select(Transfer).where(Transfer.user_id == user_id)
    if account_id is not None:
        q = q.where(or_(Transfer.from_account_id == account_id, Transfer.to_account_id == account_id))
    return s.execute(q.order_by(Transfer.date.desc(), Transfer.id.desc())).scalars().all()
