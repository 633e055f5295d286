from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable

from fintrack.models.account import INSTALLMENT_DEBT
from fintrack.models.ledger_entry import INCOME, EXPENSE
from fintrack.models.recurring_obligation import WEEKLY, BIWEEKLY, MONTHLY
from fintrack.utils.dates import add_months
from fintrack.utils.money import ZERO, d2, to_dec

# Deliberately coarse: four weeks and two fortnights per month.
MONTHLY_FACTOR = {
    WEEKLY: 4,
    BIWEEKLY: 2,
    MONTHLY: 1,
}


def monthly_equivalent(obligation) -> Decimal:
    factor = MONTHLY_FACTOR.get(obligation.frequency)
    if factor is None:
        return ZERO
    return to_dec(obligation.amount) * factor


def monthly_totals(obligations: Iterable) -> tuple[Decimal, Decimal]:
    income = ZERO
    expense = ZERO
    for ob in obligations:
        if ob.kind == INCOME:
            income += monthly_equivalent(ob)
        elif ob.kind == EXPENSE:
            expense += monthly_equivalent(ob)
    return d2(income), d2(expense)


def occurrences_until(obligation, period_end: date) -> list[date]:
    start = obligation.next_occurrence
    if obligation.frequency == WEEKLY:
        out: list[date] = []
        day = start
        while day <= period_end:
            out.append(day)
            day = day + timedelta(days=7)
        return out

    if start <= period_end:
        return [start]
    return []


def period_amount(obligation, period_end: date) -> Decimal:
    return to_dec(obligation.amount) * len(occurrences_until(obligation, period_end))


def period_totals(obligations: Iterable, period_end: date) -> tuple[Decimal, Decimal]:
    incomes = ZERO
    expenses = ZERO
    for ob in obligations:
        if ob.kind == INCOME:
            incomes += period_amount(ob, period_end)
        elif ob.kind == EXPENSE:
            expenses += period_amount(ob, period_end)
    return d2(incomes), d2(expenses)


def next_after(obligation) -> date:
    cur = obligation.next_occurrence
    if obligation.frequency == WEEKLY:
        return cur + timedelta(days=7)
    if obligation.frequency == BIWEEKLY:
        return cur + timedelta(days=14)
    return add_months(cur, 1)


def advance_obligation(obligation) -> date:
    """Mark the current occurrence as consumed and move to the next one."""
    nxt = next_after(obligation)
    if nxt <= obligation.next_occurrence:
        raise ValueError("next occurrence must move forward")
    obligation.next_occurrence = nxt
    return nxt


@dataclass(frozen=True)
class UpcomingLine:
    kind: str
    source: str
    source_id: int
    label: str
    amount: Decimal
    due: date
    overdue: bool


def upcoming_lines(
    obligations: Iterable,
    plans: Iterable,
    accounts: Iterable,
    period_end: date,
    today: date,
) -> list[UpcomingLine]:
    """Itemised view of everything due up to period_end, soonest first."""
    lines: list[UpcomingLine] = []
    for ob in obligations:
        for due in occurrences_until(ob, period_end):
            lines.append(
                UpcomingLine(
                    kind=ob.kind,
                    source="obligation",
                    source_id=ob.id,
                    label=ob.name,
                    amount=d2(to_dec(ob.amount)),
                    due=due,
                    overdue=due < today,
                )
            )

    for p in plans:
        if p.active and p.next_payment_date <= period_end:
            lines.append(
                UpcomingLine(
                    kind=EXPENSE,
                    source="installment_plan",
                    source_id=p.id,
                    label=p.description,
                    amount=d2(to_dec(p.monthly_amount)),
                    due=p.next_payment_date,
                    overdue=p.next_payment_date < today,
                )
            )

    for a in accounts:
        if a.kind == INSTALLMENT_DEBT and a.next_payment_date is not None and a.next_payment_date <= period_end:
            lines.append(
                UpcomingLine(
                    kind=EXPENSE,
                    source="debt_payment",
                    source_id=a.id,
                    label=a.name,
                    amount=d2(to_dec(a.monthly_payment)),
                    due=a.next_payment_date,
                    overdue=a.next_payment_date < today,
                )
            )

    lines.sort(key=lambda ln: (ln.due, ln.source, ln.source_id))
    return lines
