from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from fintrack.db.base import Base
from fintrack.core.errors import EntryNotFound, ObligationNotFound, ValidationError
from fintrack.models.account import ASSET, REVOLVING_CREDIT
from fintrack.models.ledger_entry import INCOME, EXPENSE
from fintrack.models.recurring_obligation import MONTHLY
from fintrack.models.user import User
import fintrack.models.audit_log  # noqa: F401
import fintrack.models.transfer  # noqa: F401
from fintrack.services.accounts import create_account, delete_account, update_account
from fintrack.services.installments import create_plan, settle_due_plans
from fintrack.services.ledger import (
    create_entry,
    delete_entry,
    edit_entry,
    get_account,
    get_entry,
    list_entries,
    refresh_balance,
)
from fintrack.services.obligations import create_obligation, delete_obligation, get_obligation

D = date(2026, 5, 4)


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


def _bal(session, user_id: int, account_id: int) -> Decimal:
    return Decimal(str(get_account(session, user_id, account_id).balance))


def test_entries_drive_balance(session):
    u = _mk_user(session)
    acc = create_account(session, u.id, "Checking", ASSET, today=D)

    create_entry(session, u.id, acc.id, INCOME, 1000, D, category="Salary")
    create_entry(session, u.id, acc.id, EXPENSE, 200, D, category="Food")

    assert _bal(session, u.id, acc.id) == Decimal("800")


def test_opening_balance_is_replayed(session):
    u = _mk_user(session)
    acc = create_account(session, u.id, "Checking", ASSET, opening_balance="1234.56", today=D)
    assert _bal(session, u.id, acc.id) == Decimal("1234.56")

    # a full recompute lands on the same figure
    assert refresh_balance(session, u.id, acc.id) == Decimal("1234.56")


def test_edit_amount_matches_delete_then_insert(session):
    u = _mk_user(session)
    a = create_account(session, u.id, "A", ASSET, today=D)
    b = create_account(session, u.id, "B", ASSET, today=D)

    create_entry(session, u.id, a.id, INCOME, 1000, D)
    e = create_entry(session, u.id, a.id, EXPENSE, 200, D)
    edit_entry(session, u.id, e.id, amount=300)

    create_entry(session, u.id, b.id, INCOME, 1000, D)
    e2 = create_entry(session, u.id, b.id, EXPENSE, 200, D)
    delete_entry(session, u.id, e2.id)
    create_entry(session, u.id, b.id, EXPENSE, 300, D)

    assert _bal(session, u.id, a.id) == Decimal("700")
    assert _bal(session, u.id, a.id) == _bal(session, u.id, b.id)


def test_edit_moving_entry_recomputes_both_accounts(session):
    u = _mk_user(session)
    a = create_account(session, u.id, "A", ASSET, today=D)
    b = create_account(session, u.id, "B", ASSET, today=D)

    e = create_entry(session, u.id, a.id, INCOME, 500, D)
    edit_entry(session, u.id, e.id, account_id=b.id, day=date(2026, 5, 6))

    assert _bal(session, u.id, a.id) == Decimal("0")
    assert _bal(session, u.id, b.id) == Decimal("500")
    assert get_entry(session, u.id, e.id).date == date(2026, 5, 6)


def test_delete_entry_restores_balance(session):
    u = _mk_user(session)
    acc = create_account(session, u.id, "Checking", ASSET, opening_balance=100, today=D)
    e = create_entry(session, u.id, acc.id, EXPENSE, 40, D)
    assert _bal(session, u.id, acc.id) == Decimal("60")

    delete_entry(session, u.id, e.id)
    assert _bal(session, u.id, acc.id) == Decimal("100")

    with pytest.raises(EntryNotFound):
        get_entry(session, u.id, e.id)


def test_income_only_into_asset_accounts(session):
    u = _mk_user(session)
    card = create_account(session, u.id, "Card", REVOLVING_CREDIT, credit_limit=500, today=D)

    with pytest.raises(ValidationError) as ei:
        create_entry(session, u.id, card.id, INCOME, 10, D)
    assert ei.value.code == "income_target_invalid"


def test_card_expense_must_fit_headroom(session):
    u = _mk_user(session)
    card = create_account(session, u.id, "Card", REVOLVING_CREDIT, credit_limit=500, today=D)

    e = create_entry(session, u.id, card.id, EXPENSE, 400, D)
    with pytest.raises(ValidationError) as ei:
        create_entry(session, u.id, card.id, EXPENSE, 150, D)
    assert ei.value.code == "insufficient_credit"
    assert _bal(session, u.id, card.id) == Decimal("400")

    # the entry being replaced does not count against the limit
    edit_entry(session, u.id, e.id, amount=500)
    assert _bal(session, u.id, card.id) == Decimal("500")


def test_non_positive_amount_rejected(session):
    u = _mk_user(session)
    acc = create_account(session, u.id, "Checking", ASSET, today=D)
    with pytest.raises(ValidationError) as ei:
        create_entry(session, u.id, acc.id, EXPENSE, 0, D)
    assert ei.value.code == "amount_not_positive"


def test_installment_entries_are_locked(session):
    u = _mk_user(session)
    card = create_account(session, u.id, "Card", REVOLVING_CREDIT, credit_limit=3000, today=D)
    create_plan(session, u.id, card.id, 1200, 12, "Laptop", today=D)
    created = settle_due_plans(session, u.id, today=date(2026, 6, 1))
    assert len(created) == 1

    with pytest.raises(ValidationError) as ei:
        edit_entry(session, u.id, created[0].id, amount=1)
    assert ei.value.code == "installment_entry_locked"

    with pytest.raises(ValidationError) as ei:
        delete_entry(session, u.id, created[0].id)
    assert ei.value.code == "installment_entry_locked"

    assert _bal(session, u.id, card.id) == Decimal("100")


def test_paying_an_obligation_early_advances_it(session):
    u = _mk_user(session)
    acc = create_account(session, u.id, "Checking", ASSET, opening_balance=1000, today=D)
    ob = create_obligation(session, u.id, "Rent", EXPENSE, 600, MONTHLY, date(2026, 5, 31), category="Housing")

    create_entry(session, u.id, acc.id, EXPENSE, 600, D, category="Housing", recurring_obligation_id=ob.id)

    assert get_obligation(session, u.id, ob.id).next_occurrence == date(2026, 6, 30)
    assert _bal(session, u.id, acc.id) == Decimal("400")


def test_unknown_obligation_rolls_back_entry(session):
    u = _mk_user(session)
    acc = create_account(session, u.id, "Checking", ASSET, opening_balance=1000, today=D)

    with pytest.raises(ObligationNotFound):
        create_entry(session, u.id, acc.id, EXPENSE, 50, D, recurring_obligation_id=9999)

    assert _bal(session, u.id, acc.id) == Decimal("1000")
    assert [e.category for e in list_entries(session, u.id, account_id=acc.id)] == ["Opening balance"]


def test_list_entries_filters(session):
    u = _mk_user(session)
    acc = create_account(session, u.id, "Checking", ASSET, today=D)
    create_entry(session, u.id, acc.id, INCOME, 10, date(2026, 5, 1))
    create_entry(session, u.id, acc.id, EXPENSE, 5, date(2026, 5, 10))
    create_entry(session, u.id, acc.id, EXPENSE, 7, date(2026, 6, 1))

    got = list_entries(session, u.id, kind=EXPENSE, start=date(2026, 5, 1), end=date(2026, 5, 31))
    assert [Decimal(str(e.amount)) for e in got] == [Decimal("5")]


def test_account_with_history_cannot_be_deleted(session):
    u = _mk_user(session)
    acc = create_account(session, u.id, "Checking", ASSET, opening_balance=50, today=D)
    create_entry(session, u.id, acc.id, EXPENSE, 10, D)

    with pytest.raises(ValidationError) as ei:
        delete_account(session, u.id, acc.id)
    assert ei.value.code == "account_has_history"


def test_account_with_only_opening_balance_can_be_deleted(session):
    u = _mk_user(session)
    acc = create_account(session, u.id, "Checking", ASSET, opening_balance=50, today=D)
    delete_account(session, u.id, acc.id)
    assert list_entries(session, u.id) == []


def test_update_account_never_writes_balance(session):
    u = _mk_user(session)
    card = create_account(session, u.id, "Card", REVOLVING_CREDIT, opening_balance=300, credit_limit=500, today=D)

    update_account(session, u.id, card.id, name="Visa", credit_limit=800, balance=0)
    card = get_account(session, u.id, card.id)
    assert card.name == "Visa"
    assert Decimal(str(card.credit_limit)) == Decimal("800")
    assert Decimal(str(card.balance)) == Decimal("300")

    with pytest.raises(ValidationError) as ei:
        update_account(session, u.id, card.id, credit_limit=100)
    assert ei.value.code == "credit_limit_invalid"


def test_delete_obligation(session):
    u = _mk_user(session)
    ob = create_obligation(session, u.id, "Gym", EXPENSE, 40, MONTHLY, date(2026, 5, 1))

    with pytest.raises(ObligationNotFound):
        delete_obligation(session, u.id, 9999)

    delete_obligation(session, u.id, ob.id)
    with pytest.raises(ObligationNotFound):
        get_obligation(session, u.id, ob.id)
