from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable

from sqlalchemy import select, or_
from sqlalchemy.orm import Session

from fintrack.core.errors import (
    AccountNotFound,
    ConsistencyWarning,
    EntryNotFound,
    ObligationNotFound,
    ValidationError,
)
from fintrack.models.account import Account, ASSET, REVOLVING_CREDIT, INSTALLMENT_DEBT
from fintrack.models.ledger_entry import LedgerEntry, INCOME, EXPENSE, ENTRY_KINDS
from fintrack.models.recurring_obligation import RecurringObligation
from fintrack.models.transfer import Transfer
from fintrack.services.recurring import advance_obligation
from fintrack.services.legs import incoming_balance, outgoing_balance
from fintrack.utils.money import ZERO, d2, to_dec

log = logging.getLogger(__name__)

_ENTRY = 0
_TRANSFER = 1


def apply_entry(kind: str, balance: Decimal, entry_kind: str, amount: Decimal) -> Decimal:
    if kind == ASSET:
        if entry_kind == INCOME:
            return balance + amount
        return balance - amount

    # revolving credit and installment debt only grow through expenses
    if entry_kind == EXPENSE:
        return balance + amount
    return balance


def _timeline(account_id: int, entries: Iterable, transfers: Iterable) -> list[tuple]:
    out: list[tuple] = []
    for e in entries:
        if e.account_id == account_id:
            out.append((e.date, _ENTRY, e.id, e))
    for t in transfers:
        if account_id in (t.from_account_id, t.to_account_id):
            out.append((t.date, _TRANSFER, t.id, t))
    # same-day ties: entries before transfers, then insertion sequence
    out.sort(key=lambda row: row[:3])
    return out


def recompute(account, entries: Iterable, transfers: Iterable = ()) -> Decimal:
    """Replay an account's balance from its full history.

    Starts at zero and folds every entry (and, when given, every transfer
    leg) that touches the account in (date, sequence) order. Entries for
    other accounts are ignored, so callers may pass a whole user's ledger.
    """
    if account is None:
        raise AccountNotFound()

    balance = ZERO
    for _, tag, _, item in _timeline(account.id, entries, transfers):
        amount = to_dec(item.amount)
        if tag == _ENTRY:
            balance = apply_entry(account.kind, balance, item.kind, amount)
        elif item.from_account_id == account.id:
            balance = outgoing_balance(account.kind, balance, amount)
        else:
            balance = incoming_balance(account.kind, balance, amount)

    if account.kind == INSTALLMENT_DEBT:
        balance = max(ZERO, balance - to_dec(account.paid_amount))

    return d2(balance)


def replay_all(accounts: Iterable, entries: Iterable, transfers: Iterable = ()) -> dict[int, Decimal]:
    by_id = {a.id: a for a in accounts}
    entries = list(entries)
    transfers = list(transfers)

    for e in entries:
        if e.account_id not in by_id:
            log.warning(ConsistencyWarning(f"entry {e.id} references missing account {e.account_id}; skipped"))

    return {aid: recompute(acc, entries, transfers) for aid, acc in by_id.items()}


def get_account(s: Session, user_id: int, account_id: int | None) -> Account:
    if account_id is None:
        raise AccountNotFound()
    acc = s.execute(
        select(Account).where(Account.id == account_id, Account.user_id == user_id)
    ).scalar_one_or_none()
    if acc is None:
        raise AccountNotFound()
    return acc


def account_history(s: Session, account: Account) -> tuple[list[LedgerEntry], list[Transfer]]:
    entries = (
        s.execute(
            select(LedgerEntry)
            .where(LedgerEntry.user_id == account.user_id, LedgerEntry.account_id == account.id)
            .order_by(LedgerEntry.date.asc(), LedgerEntry.id.asc())
        )
        .scalars()
        .all()
    )
    transfers = (
        s.execute(
            select(Transfer)
            .where(
                Transfer.user_id == account.user_id,
                or_(Transfer.from_account_id == account.id, Transfer.to_account_id == account.id),
            )
            .order_by(Transfer.date.asc(), Transfer.id.asc())
        )
        .scalars()
        .all()
    )
    return entries, transfers


def refresh_balance(s: Session, user_id: int, account_id: int | None) -> Decimal:
    """Recompute and store an account balance. Does not commit."""
    acc = get_account(s, user_id, account_id)
    s.flush()
    entries, transfers = account_history(s, acc)
    acc.balance = recompute(acc, entries, transfers)
    s.add(acc)
    return acc.balance


def _validate_entry(
    account: Account,
    kind: str,
    amount: Decimal,
    replacing: LedgerEntry | None = None,
) -> None:
    if kind not in ENTRY_KINDS:
        raise ValidationError("entry_kind_invalid", f"unknown entry kind {kind!r}")
    if amount <= 0:
        raise ValidationError("amount_not_positive", "amount must be greater than zero")
    if kind == INCOME and account.kind != ASSET:
        raise ValidationError("income_target_invalid", "income can only be recorded on asset accounts")

    if kind == EXPENSE and account.kind == REVOLVING_CREDIT:
        used = to_dec(account.balance)
        if replacing is not None and replacing.account_id == account.id and replacing.kind == EXPENSE:
            used -= to_dec(replacing.amount)
        if to_dec(account.credit_limit) - used < amount:
            raise ValidationError("insufficient_credit", "insufficient credit available")


def _ensure_editable(entry: LedgerEntry) -> None:
    if entry.is_installment:
        raise ValidationError(
            "installment_entry_locked",
            "installment entries cannot be changed directly; cancel the installment plan instead",
        )


def get_entry(s: Session, user_id: int, entry_id: int) -> LedgerEntry:
    e = s.execute(
        select(LedgerEntry).where(LedgerEntry.id == entry_id, LedgerEntry.user_id == user_id)
    ).scalar_one_or_none()
    if e is None:
        raise EntryNotFound()
    return e


def create_entry(
    s: Session,
    user_id: int,
    account_id: int,
    kind: str,
    amount,
    day: date,
    category: str = "",
    description: str | None = None,
    recurring_obligation_id: int | None = None,
    installment_plan_id: int | None = None,
) -> LedgerEntry:
    amount = d2(to_dec(amount))
    try:
        acc = get_account(s, user_id, account_id)
        _validate_entry(acc, kind, amount)

        e = LedgerEntry(
            user_id=user_id,
            account_id=acc.id,
            kind=kind,
            amount=amount,
            date=day,
            category=(category or "").strip(),
            description=(description or "").strip() or None,
            installment_plan_id=installment_plan_id,
        )
        s.add(e)
        refresh_balance(s, user_id, acc.id)

        if recurring_obligation_id is not None:
            ob = s.execute(
                select(RecurringObligation).where(
                    RecurringObligation.id == recurring_obligation_id,
                    RecurringObligation.user_id == user_id,
                )
            ).scalar_one_or_none()
            if ob is None:
                raise ObligationNotFound()
            advance_obligation(ob)
            s.add(ob)

        s.commit()
    except Exception:
        s.rollback()
        raise

    s.refresh(e)
    return e


def edit_entry(s: Session, user_id: int, entry_id: int, **changes) -> LedgerEntry:
    """Apply field changes to an entry, then replay every account it touched."""
    try:
        e = get_entry(s, user_id, entry_id)
        _ensure_editable(e)

        old_account_id = e.account_id
        target_id = changes.get("account_id") or e.account_id
        kind = changes.get("kind") or e.kind
        amount = d2(to_dec(changes["amount"])) if changes.get("amount") is not None else to_dec(e.amount)

        acc = get_account(s, user_id, target_id)
        _validate_entry(acc, kind, amount, replacing=e)

        e.account_id = acc.id
        e.kind = kind
        e.amount = amount
        if changes.get("day") is not None:
            e.date = changes["day"]
        if changes.get("category") is not None:
            e.category = changes["category"].strip()
        if "description" in changes:
            e.description = (changes["description"] or "").strip() or None
        s.add(e)

        refresh_balance(s, user_id, acc.id)
        if old_account_id is not None and old_account_id != acc.id:
            _refresh_if_present(s, user_id, old_account_id)

        s.commit()
    except Exception:
        s.rollback()
        raise

    s.refresh(e)
    return e


def delete_entry(s: Session, user_id: int, entry_id: int) -> None:
    try:
        e = get_entry(s, user_id, entry_id)
        _ensure_editable(e)
        account_id = e.account_id
        s.delete(e)
        if account_id is not None:
            _refresh_if_present(s, user_id, account_id)
        s.commit()
    except Exception:
        s.rollback()
        raise


def _refresh_if_present(s: Session, user_id: int, account_id: int) -> None:
    try:
        refresh_balance(s, user_id, account_id)
    except AccountNotFound:
        log.warning(ConsistencyWarning(f"account {account_id} is gone; balance not refreshed"))


def list_entries(
    s: Session,
    user_id: int,
    account_id: int | None = None,
    kind: str | None = None,
    start: date | None = None,
    end: date | None = None,
) -> list[LedgerEntry]:
    q = select(LedgerEntry).where(LedgerEntry.user_id == user_id)
    if account_id is not None:
        q = q.where(LedgerEntry.account_id == account_id)
    if kind is not None:
        q = q.where(LedgerEntry.kind == kind)
    if start is not None:
        q = q.where(LedgerEntry.date >= start)
    if end is not None:
        q = q.where(LedgerEntry.date <= end)
    return s.execute(q.order_by(LedgerEntry.date.desc(), LedgerEntry.id.desc())).scalars().all()


def refresh_all_balances(s: Session, user_id: int) -> dict[int, Decimal]:
    """Replay every account of a user from scratch and store the results."""
    try:
        accounts = s.execute(select(Account).where(Account.user_id == user_id)).scalars().all()
        entries = s.execute(select(LedgerEntry).where(LedgerEntry.user_id == user_id)).scalars().all()
        transfers = s.execute(select(Transfer).where(Transfer.user_id == user_id)).scalars().all()

        balances = replay_all(accounts, entries, transfers)
        for acc in accounts:
            acc.balance = balances[acc.id]
            s.add(acc)
        s.commit()
    except Exception:
        s.rollback()
        raise
    return balances
