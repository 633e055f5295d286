from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable

from fintrack.models.account import ASSET, REVOLVING_CREDIT, INSTALLMENT_DEBT, DEBT_KINDS
from fintrack.services.installments import monthly_installments_total, plan_obligations
from fintrack.services.recurring import UpcomingLine, monthly_totals, period_totals, upcoming_lines
from fintrack.utils.dates import end_of_month
from fintrack.utils.money import ZERO, d2, to_dec
from fintrack.utils.timezone import today_local

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class BudgetProjection:
    free_money: Decimal
    daily_budget: Decimal
    period_upcoming_expenses: Decimal
    period_upcoming_incomes: Decimal
    net_monthly_disposable: Decimal
    asset_total: Decimal
    credit_headroom: Decimal
    total_debt: Decimal
    monthly_income: Decimal
    monthly_expense: Decimal
    monthly_installments: Decimal
    period_end: date
    days_remaining: int
    upcoming: list[UpcomingLine] = field(default_factory=list)


def days_remaining(today: date, period_end: date) -> int:
    return max(1, (period_end - today).days)


def _plans_due(plans: Iterable, accounts_by_id: dict, period_end: date) -> Decimal:
    live = []
    for p in plans:
        if p.account_id not in accounts_by_id:
            log.debug("plan %s references missing account %s; contributes zero", p.id, p.account_id)
            continue
        live.append(p)
    return sum((po.amount for po in plan_obligations(live) if po.next_occurrence <= period_end), ZERO)


def _debt_payments_due(accounts: Iterable, period_end: date) -> Decimal:
    total = ZERO
    for a in accounts:
        if a.kind != INSTALLMENT_DEBT or a.next_payment_date is None:
            continue
        if a.next_payment_date <= period_end:
            total += to_dec(a.monthly_payment)
    return total


def project_budget(
    accounts: Iterable,
    obligations: Iterable,
    plans: Iterable,
    period_end: date | None = None,
    today: date | None = None,
) -> BudgetProjection:
    """Free money and a safe daily spend for the rest of the period.

    Revolving credit headroom is reported next to the figures but never
    counted as spendable money.
    """
    today = today or today_local()
    period_end = period_end or end_of_month(today)

    accounts = list(accounts)
    obligations = list(obligations)
    plans = list(plans)
    by_id = {a.id: a for a in accounts}
    # plans on accounts that are gone contribute nothing anywhere
    live_plans = [p for p in plans if p.account_id in by_id]

    asset_total = sum((to_dec(a.balance) for a in accounts if a.kind == ASSET), ZERO)
    headroom = sum(
        (to_dec(a.credit_limit) - to_dec(a.balance) for a in accounts if a.kind == REVOLVING_CREDIT),
        ZERO,
    )
    total_debt = sum((to_dec(a.balance) for a in accounts if a.kind in DEBT_KINDS), ZERO)

    period_incomes, period_expenses = period_totals(obligations, period_end)
    upcoming_expenses = period_expenses + _plans_due(plans, by_id, period_end) + _debt_payments_due(accounts, period_end)
    upcoming_incomes = period_incomes

    free_money = asset_total - upcoming_expenses + upcoming_incomes
    days = days_remaining(today, period_end)
    daily = max(ZERO, free_money / Decimal(days))

    monthly_income, monthly_expense = monthly_totals(obligations)
    monthly_installments = monthly_installments_total(live_plans)
    net_monthly = monthly_income - (monthly_expense + monthly_installments)

    return BudgetProjection(
        free_money=d2(free_money),
        daily_budget=d2(daily),
        period_upcoming_expenses=d2(upcoming_expenses),
        period_upcoming_incomes=d2(upcoming_incomes),
        net_monthly_disposable=d2(net_monthly),
        asset_total=d2(asset_total),
        credit_headroom=d2(headroom),
        total_debt=d2(total_debt),
        monthly_income=monthly_income,
        monthly_expense=monthly_expense,
        monthly_installments=monthly_installments,
        period_end=period_end,
        days_remaining=days,
        upcoming=upcoming_lines(obligations, live_plans, accounts, period_end, today),
    )


def project_user_budget(ledger, period_end: date | None = None, today: date | None = None) -> BudgetProjection:
    return project_budget(ledger.accounts, ledger.obligations, ledger.plans, period_end, today)
