import logging
from datetime import date, timedelta
from decimal import Decimal
from random import Random

import pytest

from fintrack.core.errors import AccountNotFound
from fintrack.models.account import Account, ASSET, REVOLVING_CREDIT, INSTALLMENT_DEBT
from fintrack.models.ledger_entry import LedgerEntry, INCOME, EXPENSE
from fintrack.models.transfer import Transfer
from fintrack.services.ledger import recompute, replay_all


def _acc(id: int, kind: str, **kw) -> Account:
    return Account(id=id, user_id=1, name=f"acc-{id}", kind=kind, balance=Decimal("0"), **kw)


def _e(id: int, account_id, kind: str, amount, d: date) -> LedgerEntry:
    return LedgerEntry(id=id, user_id=1, account_id=account_id, kind=kind, amount=Decimal(str(amount)), date=d, category="")


def _t(id: int, from_id: int, to_id: int, amount, d: date) -> Transfer:
    return Transfer(id=id, user_id=1, from_account_id=from_id, to_account_id=to_id, amount=Decimal(str(amount)), date=d)


def test_asset_balance_is_incomes_minus_expenses():
    acc = _acc(1, ASSET)
    d = date(2026, 1, 5)
    entries = [
        _e(1, 1, INCOME, 1000, d),
        _e(2, 1, EXPENSE, 250, d + timedelta(days=1)),
        _e(3, 1, EXPENSE, 800, d + timedelta(days=2)),
    ]
    # asset accounts may go negative
    assert recompute(acc, entries) == Decimal("-50.00")


def test_debt_accounts_only_grow_through_expenses():
    d = date(2026, 1, 5)
    card = _acc(1, REVOLVING_CREDIT, credit_limit=Decimal("1000"))
    entries = [
        _e(1, 1, EXPENSE, 300, d),
        _e(2, 1, INCOME, 100, d),
    ]
    assert recompute(card, entries) == Decimal("300.00")


def test_entries_for_other_accounts_are_ignored():
    acc = _acc(1, ASSET)
    d = date(2026, 2, 1)
    entries = [_e(1, 1, INCOME, 100, d), _e(2, 2, INCOME, 999, d), _e(3, None, EXPENSE, 5, d)]
    assert recompute(acc, entries) == Decimal("100.00")


def test_empty_history_is_zero():
    assert recompute(_acc(1, ASSET), []) == Decimal("0.00")


def test_missing_account_raises():
    with pytest.raises(AccountNotFound):
        recompute(None, [])


def test_installment_debt_subtracts_paid_amount_floored_at_zero():
    d = date(2026, 1, 1)
    entries = [_e(1, 1, EXPENSE, 1000, d)]

    debt = _acc(1, INSTALLMENT_DEBT, total_debt=Decimal("1000"), paid_amount=Decimal("200"))
    assert recompute(debt, entries) == Decimal("800.00")

    debt.paid_amount = Decimal("1500")
    assert recompute(debt, entries) == Decimal("0.00")


def test_same_day_entries_replay_before_transfers():
    d = date(2026, 3, 10)
    card = _acc(1, REVOLVING_CREDIT, credit_limit=Decimal("1000"))
    entries = [_e(50, 1, EXPENSE, 300, d)]
    transfers = [_t(1, 2, 1, 100, d)]

    # expense first (300), then the repayment brings it to 200; the other
    # order would floor at zero first and end at 300
    assert recompute(card, entries, transfers) == Decimal("200.00")


def test_transfer_legs_fold_into_replay():
    d = date(2026, 3, 10)
    cash = _acc(1, ASSET)
    card = _acc(2, REVOLVING_CREDIT, credit_limit=Decimal("1000"))
    entries = [_e(1, 1, INCOME, 500, d), _e(2, 2, EXPENSE, 200, d)]
    transfers = [_t(1, 1, 2, 300, d)]

    assert recompute(cash, entries, transfers) == Decimal("200.00")
    assert recompute(card, entries, transfers) == Decimal("0.00")


def test_replay_is_independent_of_delivery_order():
    rng = Random(1337)
    start = date(2026, 1, 1)

    cash = _acc(1, ASSET)
    card = _acc(2, REVOLVING_CREDIT, credit_limit=Decimal("5000"))

    entries = []
    transfers = []
    for i in range(1, 121):
        d = start + timedelta(days=rng.randint(0, 60))
        amt = rng.choice([10, 25, 50, 99.99, 100, 250.5, 400])
        if rng.random() < 0.5:
            entries.append(_e(i, 1, rng.choice([INCOME, EXPENSE]), amt, d))
        else:
            entries.append(_e(i, 2, EXPENSE, amt, d))
    for i in range(1, 31):
        d = start + timedelta(days=rng.randint(0, 60))
        transfers.append(_t(i, 1, 2, rng.choice([50, 100, 300]), d))

    expected = {a.id: recompute(a, entries, transfers) for a in (cash, card)}

    for _ in range(10):
        es = entries[:]
        ts = transfers[:]
        rng.shuffle(es)
        rng.shuffle(ts)
        for a in (cash, card):
            assert recompute(a, es, ts) == expected[a.id]
            # duplicate delivery of the same snapshot cannot double count
            assert recompute(a, es, ts) == expected[a.id]


def test_replay_all_logs_orphan_entries(caplog):
    d = date(2026, 1, 1)
    cash = _acc(1, ASSET)
    entries = [_e(1, 1, INCOME, 100, d), _e(2, 77, EXPENSE, 40, d)]

    with caplog.at_level(logging.WARNING, logger="fintrack.services.ledger"):
        out = replay_all([cash], entries)

    assert out == {1: Decimal("100.00")}
    assert "missing account 77" in caplog.text
