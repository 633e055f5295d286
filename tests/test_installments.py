from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from fintrack.db.base import Base
from fintrack.core.errors import PlanNotFound, ValidationError
from fintrack.models.account import ASSET, REVOLVING_CREDIT, INSTALLMENT_DEBT
from fintrack.models.installment_plan import InstallmentPlan
from fintrack.models.ledger_entry import EXPENSE
from fintrack.models.user import User
import fintrack.models.audit_log  # noqa: F401
import fintrack.models.recurring_obligation  # noqa: F401
import fintrack.models.transfer  # noqa: F401
from fintrack.services.accounts import create_account, update_account
from fintrack.services.installments import (
    INSTALLMENT_CATEGORY,
    advance,
    advance_plan,
    cancel_plan,
    create_plan,
    edit,
    edit_plan,
    get_plan,
    list_plans,
    monthly_amount_for,
    monthly_installments_total,
    plan_obligations,
    settle_due_debts,
    settle_due_plans,
)
from fintrack.services.ledger import get_account

D = date(2026, 1, 15)


@pytest.fixture()
def engine():
    eng = create_engine("sqlite+pysqlite:///:memory:", future=True)
    Base.metadata.create_all(eng)
    return eng


@pytest.fixture()
def session(engine):
    connection = engine.connect()
    trans = connection.begin()
    Session = sessionmaker(
        bind=connection,
        autoflush=False,
        autocommit=False,
        future=True,
        join_transaction_mode="create_savepoint",
    )
    s = Session()
    try:
        yield s
    finally:
        s.close()
        trans.rollback()
        connection.close()


def _mk_user(session) -> User:
    u = User(username=f"u-{uuid4().hex[:10]}", password_hash="x")
    session.add(u)
    session.commit()
    return u


def _plan(total, count: int, next_payment: date = date(2026, 2, 1)) -> InstallmentPlan:
    total = Decimal(str(total))
    return InstallmentPlan(
        id=1,
        user_id=1,
        account_id=1,
        description="plan",
        total_amount=total,
        installment_count=count,
        monthly_amount=monthly_amount_for(total, count),
        remaining_installments=count,
        start_date=D,
        next_payment_date=next_payment,
        active=True,
    )


def test_monthly_amount():
    assert monthly_amount_for(Decimal("1200"), 12) == Decimal("100.00")
    assert monthly_amount_for(Decimal("1000"), 3) == Decimal("333.33")


def test_advance_runs_plan_to_completion():
    p = _plan(1200, 12)
    for _ in range(12):
        advance(p)

    assert p.remaining_installments == 0
    assert p.active is False
    assert p.next_payment_date == date(2027, 2, 1)

    with pytest.raises(ValidationError) as ei:
        advance(p)
    assert ei.value.code == "plan_inactive"


def test_rounded_payments_stay_within_a_cent_per_installment():
    for total, count in [(1000, 3), (999.99, 7), (50, 6), (12345.67, 24)]:
        p = _plan(total, count)
        paid = p.monthly_amount * count
        assert abs(paid - Decimal(str(total))) <= Decimal("0.01") * count


def test_edit_keeps_remaining_installments():
    p = _plan(1200, 12)
    for _ in range(4):
        advance(p)

    edit(p, 600, 6)

    assert p.monthly_amount == Decimal("100.00")
    assert p.installment_count == 6
    assert p.remaining_installments == 8


def test_edit_rejects_bad_terms():
    p = _plan(1200, 12)
    with pytest.raises(ValidationError) as ei:
        edit(p, 600, 0)
    assert ei.value.code == "installment_count_invalid"


def test_plan_obligations_only_for_active_plans():
    active = _plan(300, 3)
    done = _plan(300, 3)
    done.id = 2
    done.active = False

    obs = plan_obligations([active, done])
    assert len(obs) == 1
    assert obs[0].kind == EXPENSE
    assert obs[0].amount == Decimal("100.00")
    assert obs[0].next_occurrence == date(2026, 2, 1)
    assert monthly_installments_total([active, done]) == Decimal("100.00")


def test_create_plan_requires_revolving_credit(session):
    u = _mk_user(session)
    cash = create_account(session, u.id, "Checking", ASSET, today=D)

    with pytest.raises(ValidationError) as ei:
        create_plan(session, u.id, cash.id, 1200, 12, today=D)
    assert ei.value.code == "account_kind_invalid"


def test_create_advance_edit_cancel(session):
    u = _mk_user(session)
    card = create_account(session, u.id, "Card", REVOLVING_CREDIT, credit_limit=5000, today=D)

    p = create_plan(session, u.id, card.id, 1200, 12, "  Phone ", today=D)
    assert p.description == "Phone"
    assert p.start_date == D
    assert p.next_payment_date == date(2026, 2, 1)
    assert Decimal(str(p.monthly_amount)) == Decimal("100")

    p = advance_plan(session, u.id, p.id)
    assert p.remaining_installments == 11
    assert p.next_payment_date == date(2026, 3, 1)
    assert Decimal(str(get_account(session, u.id, card.id).balance)) == Decimal("100")

    p = edit_plan(session, u.id, p.id, 2400, 12)
    assert Decimal(str(p.monthly_amount)) == Decimal("200")
    assert p.remaining_installments == 11

    p = cancel_plan(session, u.id, p.id)
    assert p.active is False
    assert p.remaining_installments == 11
    assert list_plans(session, u.id, active_only=True) == []

    with pytest.raises(PlanNotFound):
        get_plan(session, u.id, 9999)


def test_settle_due_plans_is_idempotent(session):
    u = _mk_user(session)
    card = create_account(session, u.id, "Card", REVOLVING_CREDIT, credit_limit=5000, today=D)
    p = create_plan(session, u.id, card.id, 1200, 12, "Laptop", today=D)

    created = settle_due_plans(session, u.id, today=date(2026, 3, 10))
    assert [e.date for e in created] == [date(2026, 2, 1), date(2026, 3, 1)]
    assert all(e.category == INSTALLMENT_CATEGORY for e in created)
    assert all(e.installment_plan_id == p.id for e in created)

    assert settle_due_plans(session, u.id, today=date(2026, 3, 10)) == []

    p = get_plan(session, u.id, p.id)
    assert p.remaining_installments == 10
    assert p.next_payment_date == date(2026, 4, 1)
    assert Decimal(str(get_account(session, u.id, card.id).balance)) == Decimal("200")


def test_settle_due_plans_stops_when_plan_completes(session):
    u = _mk_user(session)
    card = create_account(session, u.id, "Card", REVOLVING_CREDIT, credit_limit=5000, today=D)
    p = create_plan(session, u.id, card.id, 300, 3, today=D)

    created = settle_due_plans(session, u.id, today=date(2027, 1, 1))
    assert len(created) == 3

    p = get_plan(session, u.id, p.id)
    assert p.active is False
    assert p.remaining_installments == 0
    assert Decimal(str(get_account(session, u.id, card.id).balance)) == Decimal("300")


def test_settle_due_debts(session):
    u = _mk_user(session)
    loan = create_account(
        session,
        u.id,
        "Car loan",
        INSTALLMENT_DEBT,
        total_debt=1200,
        monthly_payment=100,
        remaining_months=12,
        next_payment_date=date(2026, 1, 1),
        today=date(2025, 12, 15),
    )
    assert Decimal(str(loan.balance)) == Decimal("1200")

    touched = settle_due_debts(session, u.id, today=date(2026, 3, 5))
    assert [a.id for a in touched] == [loan.id]

    loan = get_account(session, u.id, loan.id)
    assert Decimal(str(loan.paid_amount)) == Decimal("300")
    assert loan.remaining_months == 9
    assert loan.next_payment_date == date(2026, 4, 1)
    assert Decimal(str(loan.balance)) == Decimal("900")

    assert settle_due_debts(session, u.id, today=date(2026, 3, 5)) == []


def test_settle_due_debts_clears_date_when_paid_off(session):
    u = _mk_user(session)
    loan = create_account(
        session,
        u.id,
        "Loan",
        INSTALLMENT_DEBT,
        total_debt=1000,
        monthly_payment=250,
        remaining_months=2,
        next_payment_date=date(2026, 1, 1),
        today=date(2025, 12, 1),
    )

    settle_due_debts(session, u.id, today=date(2026, 12, 31))

    loan = get_account(session, u.id, loan.id)
    assert loan.remaining_months == 0
    assert loan.next_payment_date is None
    assert Decimal(str(loan.balance)) == Decimal("500")


def test_advance_then_settle_books_each_period_once(session):
    u = _mk_user(session)
    card = create_account(session, u.id, "Card", REVOLVING_CREDIT, credit_limit=5000, today=D)
    p = create_plan(session, u.id, card.id, 1200, 12, "Phone", today=D)

    p = advance_plan(session, u.id, p.id)
    assert p.next_payment_date == date(2026, 3, 1)
    assert Decimal(str(get_account(session, u.id, card.id).balance)) == Decimal("100")

    created = settle_due_plans(session, u.id, today=date(2026, 3, 10))
    assert [e.date for e in created] == [date(2026, 3, 1)]

    p = get_plan(session, u.id, p.id)
    assert p.remaining_installments == 10
    assert Decimal(str(get_account(session, u.id, card.id).balance)) == Decimal("200")


def test_advance_inactive_plan_books_nothing(session):
    u = _mk_user(session)
    card = create_account(session, u.id, "Card", REVOLVING_CREDIT, credit_limit=5000, today=D)
    p = create_plan(session, u.id, card.id, 100, 1, today=D)
    advance_plan(session, u.id, p.id)

    with pytest.raises(ValidationError) as ei:
        advance_plan(session, u.id, p.id)
    assert ei.value.code == "plan_inactive"
    assert Decimal(str(get_account(session, u.id, card.id).balance)) == Decimal("100")


def test_cancel_unknown_plan_leaves_session_usable(session):
    u = _mk_user(session)
    card = create_account(session, u.id, "Card", REVOLVING_CREDIT, credit_limit=5000, today=D)

    with pytest.raises(PlanNotFound):
        cancel_plan(session, u.id, 9999)

    p = create_plan(session, u.id, card.id, 600, 6, today=D)
    assert cancel_plan(session, u.id, p.id).active is False


def test_total_debt_cannot_drop_below_amount_owed(session):
    u = _mk_user(session)
    loan = create_account(
        session,
        u.id,
        "Loan",
        INSTALLMENT_DEBT,
        total_debt=1200,
        monthly_payment=100,
        remaining_months=12,
        next_payment_date=date(2026, 2, 1),
        today=D,
    )

    for bad in (500, 0):
        with pytest.raises(ValidationError) as ei:
            update_account(session, u.id, loan.id, total_debt=bad)
        assert ei.value.code == "total_debt_invalid"

    loan = update_account(session, u.id, loan.id, total_debt=1500)
    assert Decimal(str(loan.total_debt)) == Decimal("1500")
