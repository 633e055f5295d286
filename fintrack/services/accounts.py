from __future__ import annotations

from datetime import date

from sqlalchemy import select, func, or_
from sqlalchemy.orm import Session

from fintrack.core.errors import ValidationError
from fintrack.models.account import Account, ACCOUNT_KINDS, ASSET, REVOLVING_CREDIT, INSTALLMENT_DEBT
from fintrack.models.installment_plan import InstallmentPlan
from fintrack.models.ledger_entry import LedgerEntry, INCOME, EXPENSE
from fintrack.models.transfer import Transfer
from fintrack.services.ledger import get_account, refresh_balance
from fintrack.utils.money import ZERO, d2, to_dec
from fintrack.utils.timezone import today_local

OPENING_CATEGORY = "Opening balance"


def _opening_entry(acc: Account, opening, day: date) -> LedgerEntry | None:
    opening = d2(to_dec(opening))
    if opening == 0:
        return None
    if acc.kind == ASSET and opening > 0:
        kind = INCOME
    else:
        kind = EXPENSE
    return LedgerEntry(
        user_id=acc.user_id,
        account_id=acc.id,
        kind=kind,
        amount=abs(opening),
        date=day,
        category=OPENING_CATEGORY,
        description=f"Opening balance - {acc.name}",
    )


def _validate_account(kind: str, opening, credit_limit, total_debt, monthly_payment) -> None:
    if kind not in ACCOUNT_KINDS:
        raise ValidationError("account_kind_invalid", f"unknown account kind {kind!r}")

    opening = to_dec(opening)
    if kind == REVOLVING_CREDIT:
        if credit_limit is None or to_dec(credit_limit) <= 0:
            raise ValidationError("credit_limit_required", "revolving credit accounts need a positive credit limit")
        if opening < 0 or opening > to_dec(credit_limit):
            raise ValidationError("balance_out_of_range", "balance must be between zero and the credit limit")
    elif kind == INSTALLMENT_DEBT:
        if total_debt is None or to_dec(total_debt) <= 0:
            raise ValidationError("total_debt_required", "installment debt accounts need a positive total debt")
        if opening < 0 or opening > to_dec(total_debt):
            raise ValidationError("balance_out_of_range", "balance must be between zero and the total debt")
        if monthly_payment is not None and to_dec(monthly_payment) < 0:
            raise ValidationError("amount_not_positive", "monthly payment cannot be negative")


def create_account(
    s: Session,
    user_id: int,
    name: str,
    kind: str,
    opening_balance=ZERO,
    credit_limit=None,
    total_debt=None,
    monthly_payment=None,
    remaining_months: int | None = None,
    next_payment_date: date | None = None,
    today: date | None = None,
) -> Account:
    nm = (name or "").strip()
    if not nm:
        raise ValidationError("account_name_required", "account name is required")
    if kind == INSTALLMENT_DEBT and opening_balance in (None, 0, ZERO):
        opening_balance = total_debt
    _validate_account(kind, opening_balance, credit_limit, total_debt, monthly_payment)

    acc = Account(
        user_id=user_id,
        name=nm,
        kind=kind,
        balance=ZERO,
        paid_amount=ZERO,
    )
    if kind == REVOLVING_CREDIT:
        acc.credit_limit = d2(to_dec(credit_limit))
    elif kind == INSTALLMENT_DEBT:
        acc.total_debt = d2(to_dec(total_debt))
        acc.monthly_payment = d2(to_dec(monthly_payment)) if monthly_payment is not None else ZERO
        acc.remaining_months = remaining_months
        acc.next_payment_date = next_payment_date

    try:
        s.add(acc)
        s.flush()
        e = _opening_entry(acc, opening_balance, today or today_local())
        if e is not None:
            s.add(e)
        refresh_balance(s, user_id, acc.id)
        s.commit()
    except Exception:
        s.rollback()
        raise
    s.refresh(acc)
    return acc


def update_account(s: Session, user_id: int, account_id: int, **changes) -> Account:
    """Edit account settings. The balance itself is never written here."""
    try:
        acc = get_account(s, user_id, account_id)
        if changes.get("name") is not None:
            nm = changes["name"].strip()
            if not nm:
                raise ValidationError("account_name_required", "account name is required")
            acc.name = nm

        if acc.kind == REVOLVING_CREDIT and changes.get("credit_limit") is not None:
            limit = d2(to_dec(changes["credit_limit"]))
            if limit <= 0 or limit < to_dec(acc.balance):
                raise ValidationError("credit_limit_invalid", "credit limit cannot be below the amount owed")
            acc.credit_limit = limit

        if acc.kind == INSTALLMENT_DEBT:
            for field in ("monthly_payment", "remaining_months", "next_payment_date"):
                if field in changes and changes[field] is not None:
                    setattr(acc, field, changes[field])
            if changes.get("total_debt") is not None:
                total = d2(to_dec(changes["total_debt"]))
                if total <= 0 or total < to_dec(acc.balance):
                    raise ValidationError("total_debt_invalid", "total debt cannot be below the amount owed")
                acc.total_debt = total

        s.add(acc)
        s.commit()
    except Exception:
        s.rollback()
        raise
    s.refresh(acc)
    return acc


def has_history(s: Session, user_id: int, account_id: int) -> bool:
    n_entries = s.execute(
        select(func.count(LedgerEntry.id)).where(
            LedgerEntry.user_id == user_id,
            LedgerEntry.account_id == account_id,
            LedgerEntry.category != OPENING_CATEGORY,
        )
    ).scalar_one()
    n_transfers = s.execute(
        select(func.count(Transfer.id)).where(
            Transfer.user_id == user_id,
            or_(Transfer.from_account_id == account_id, Transfer.to_account_id == account_id),
        )
    ).scalar_one()
    return bool(n_entries or n_transfers)


def delete_account(s: Session, user_id: int, account_id: int) -> Account:
    try:
        acc = get_account(s, user_id, account_id)
        if has_history(s, user_id, account_id):
            raise ValidationError("account_has_history", "account has transactions or transfers")

        active_plans = s.execute(
            select(func.count(InstallmentPlan.id)).where(
                InstallmentPlan.account_id == account_id,
                InstallmentPlan.active.is_(True),
            )
        ).scalar_one()
        if active_plans:
            raise ValidationError("account_has_active_plans", "cancel the installment plans first")

        openings = s.execute(
            select(LedgerEntry).where(LedgerEntry.user_id == user_id, LedgerEntry.account_id == account_id)
        ).scalars().all()
        for e in openings:
            s.delete(e)
        s.delete(acc)
        s.commit()
    except Exception:
        s.rollback()
        raise
    return acc


def list_accounts(s: Session, user_id: int) -> list[Account]:
    return s.execute(
        select(Account).where(Account.user_id == user_id).order_by(Account.created_at.asc(), Account.id.asc())
    ).scalars().all()
