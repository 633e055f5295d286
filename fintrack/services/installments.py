from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from fintrack.core.errors import PlanNotFound, ValidationError
from fintrack.models.account import Account, REVOLVING_CREDIT, INSTALLMENT_DEBT
from fintrack.models.installment_plan import InstallmentPlan
from fintrack.models.ledger_entry import LedgerEntry, EXPENSE
from fintrack.models.recurring_obligation import MONTHLY
from fintrack.services.ledger import get_account, refresh_balance
from fintrack.utils.dates import add_months, next_month_start
from fintrack.utils.money import ZERO, d2, to_dec
from fintrack.utils.timezone import today_local

log = logging.getLogger(__name__)

INSTALLMENT_CATEGORY = "Installments"


@dataclass(frozen=True)
class PlanObligation:
    """An active plan seen as a monthly expense obligation."""

    id: int
    name: str
    amount: Decimal
    next_occurrence: date
    kind: str = EXPENSE
    frequency: str = MONTHLY
    category: str = INSTALLMENT_CATEGORY


def monthly_amount_for(total_amount: Decimal, installment_count: int) -> Decimal:
    return d2(to_dec(total_amount) / Decimal(installment_count))


def _validate_terms(total_amount: Decimal, installment_count: int) -> None:
    if installment_count is None or int(installment_count) < 1:
        raise ValidationError("installment_count_invalid", "installment count must be at least 1")
    if total_amount <= 0:
        raise ValidationError("amount_not_positive", "total amount must be greater than zero")


def advance(plan) -> None:
    """Consume one payment period of the plan."""
    if not plan.active or plan.remaining_installments <= 0:
        raise ValidationError("plan_inactive", "plan has no remaining installments")

    plan.remaining_installments -= 1
    plan.next_payment_date = add_months(plan.next_payment_date, 1)
    if plan.remaining_installments == 0:
        plan.active = False


def edit(plan, new_total_amount, new_installment_count: int) -> None:
    """Change the plan totals.

    remaining_installments is left untouched, so monthly_amount may no
    longer match what has already been paid.
    """
    total = d2(to_dec(new_total_amount))
    _validate_terms(total, new_installment_count)
    plan.total_amount = total
    plan.installment_count = int(new_installment_count)
    plan.monthly_amount = monthly_amount_for(total, plan.installment_count)


def cancel(plan) -> None:
    plan.active = False


def plan_obligations(plans: Iterable) -> list[PlanObligation]:
    return [
        PlanObligation(
            id=p.id,
            name=p.description,
            amount=to_dec(p.monthly_amount),
            next_occurrence=p.next_payment_date,
        )
        for p in plans
        if p.active
    ]


def get_plan(s: Session, user_id: int, plan_id: int) -> InstallmentPlan:
    p = s.execute(
        select(InstallmentPlan).where(InstallmentPlan.id == plan_id, InstallmentPlan.user_id == user_id)
    ).scalar_one_or_none()
    if p is None:
        raise PlanNotFound()
    return p


def list_plans(s: Session, user_id: int, active_only: bool = False) -> list[InstallmentPlan]:
    q = select(InstallmentPlan).where(InstallmentPlan.user_id == user_id)
    if active_only:
        q = q.where(InstallmentPlan.active.is_(True))
    return s.execute(q.order_by(InstallmentPlan.next_payment_date.asc(), InstallmentPlan.id.asc())).scalars().all()


def create_plan(
    s: Session,
    user_id: int,
    account_id: int,
    total_amount,
    installment_count: int,
    description: str = "",
    today: date | None = None,
) -> InstallmentPlan:
    total = d2(to_dec(total_amount))
    acc = get_account(s, user_id, account_id)
    if acc.kind != REVOLVING_CREDIT:
        raise ValidationError("account_kind_invalid", "installment plans require a revolving credit account")
    _validate_terms(total, installment_count)

    today = today or today_local()
    count = int(installment_count)
    plan = InstallmentPlan(
        user_id=user_id,
        account_id=acc.id,
        description=(description or "").strip(),
        total_amount=total,
        installment_count=count,
        monthly_amount=monthly_amount_for(total, count),
        remaining_installments=count,
        start_date=today,
        next_payment_date=next_month_start(today),
        active=True,
    )
    try:
        s.add(plan)
        s.commit()
    except Exception:
        s.rollback()
        raise
    s.refresh(plan)
    return plan


def _book_payment(s: Session, user_id: int, plan: InstallmentPlan) -> LedgerEntry:
    """Charge the current period of a plan to its account and step the plan.

    The entry is dated at the period's payment date and is locked against
    direct edits. Headroom is not checked: the purchase was authorised when
    the plan was opened.
    """
    due = plan.next_payment_date
    advance(plan)
    e = LedgerEntry(
        user_id=user_id,
        account_id=plan.account_id,
        kind=EXPENSE,
        amount=d2(to_dec(plan.monthly_amount)),
        date=due,
        category=INSTALLMENT_CATEGORY,
        description=plan.description or None,
        installment_plan_id=plan.id,
    )
    s.add(e)
    s.add(plan)
    return e


def advance_plan(s: Session, user_id: int, plan_id: int) -> InstallmentPlan:
    """Pay the current period now, ahead of the scheduled settlement."""
    try:
        plan = get_plan(s, user_id, plan_id)
        _book_payment(s, user_id, plan)
        refresh_balance(s, user_id, plan.account_id)
        s.commit()
    except Exception:
        s.rollback()
        raise
    s.refresh(plan)
    return plan


def edit_plan(
    s: Session,
    user_id: int,
    plan_id: int,
    total_amount,
    installment_count: int,
    description: str | None = None,
) -> InstallmentPlan:
    try:
        plan = get_plan(s, user_id, plan_id)
        edit(plan, total_amount, installment_count)
        if description is not None:
            plan.description = description.strip()
        s.add(plan)
        s.commit()
    except Exception:
        s.rollback()
        raise
    s.refresh(plan)
    return plan


def cancel_plan(s: Session, user_id: int, plan_id: int) -> InstallmentPlan:
    try:
        plan = get_plan(s, user_id, plan_id)
        cancel(plan)
        s.add(plan)
        s.commit()
    except Exception:
        s.rollback()
        raise
    s.refresh(plan)
    return plan


def settle_due_plans(s: Session, user_id: int, today: date | None = None) -> list[LedgerEntry]:
    """Materialise every elapsed installment payment as a ledger entry.

    Each due period produces one expense entry dated at its payment date,
    then the plan advances. Running again for the same day finds nothing due.
    """
    today = today or today_local()
    created: list[LedgerEntry] = []
    touched: set[int] = set()

    try:
        plans = (
            s.execute(
                select(InstallmentPlan)
                .where(
                    InstallmentPlan.user_id == user_id,
                    InstallmentPlan.active.is_(True),
                    InstallmentPlan.next_payment_date <= today,
                )
                .order_by(InstallmentPlan.id.asc())
            )
            .scalars()
            .all()
        )
        for plan in plans:
            while plan.active and plan.next_payment_date <= today:
                created.append(_book_payment(s, user_id, plan))
            touched.add(plan.account_id)

        for account_id in sorted(touched):
            refresh_balance(s, user_id, account_id)
        s.commit()
    except Exception:
        s.rollback()
        raise

    if created:
        log.info("settled %d installment payments for user %s", len(created), user_id)
    return created


def settle_due_debts(s: Session, user_id: int, today: date | None = None) -> list[Account]:
    """Book elapsed monthly payments of installment-debt accounts."""
    today = today or today_local()
    touched: list[Account] = []

    try:
        accounts = (
            s.execute(
                select(Account).where(
                    Account.user_id == user_id,
                    Account.kind == INSTALLMENT_DEBT,
                    Account.next_payment_date.is_not(None),
                    Account.next_payment_date <= today,
                )
            )
            .scalars()
            .all()
        )
        for acc in accounts:
            paid = False
            while acc.next_payment_date <= today and (acc.remaining_months or 0) > 0:
                acc.paid_amount = d2(to_dec(acc.paid_amount) + to_dec(acc.monthly_payment))
                acc.remaining_months -= 1
                acc.next_payment_date = add_months(acc.next_payment_date, 1)
                paid = True
            if acc.remaining_months is not None and acc.remaining_months <= 0:
                acc.next_payment_date = None
            if paid:
                touched.append(acc)
                refresh_balance(s, user_id, acc.id)
        s.commit()
    except Exception:
        s.rollback()
        raise

    return touched


def monthly_installments_total(plans: Iterable) -> Decimal:
    total = ZERO
    for p in plans:
        if p.active:
            total += to_dec(p.monthly_amount)
    return d2(total)
