from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable

from sqlalchemy import select
from sqlalchemy.orm import Session

from fintrack.core.errors import AccountNotFound
from fintrack.models.account import Account
from fintrack.models.installment_plan import InstallmentPlan
from fintrack.models.ledger_entry import LedgerEntry
from fintrack.models.recurring_obligation import RecurringObligation
from fintrack.models.transfer import Transfer

log = logging.getLogger(__name__)


@dataclass
class UserLedger:
    """Everything one user owns, as a single read-side snapshot."""

    user_id: int
    accounts: list = field(default_factory=list)
    entries: list = field(default_factory=list)
    obligations: list = field(default_factory=list)
    plans: list = field(default_factory=list)
    transfers: list = field(default_factory=list)

    def account(self, account_id: int):
        for a in self.accounts:
            if a.id == account_id:
                return a
        raise AccountNotFound()

    def entries_for(self, account_id: int) -> list:
        return [e for e in self.entries if e.account_id == account_id]

    def transfers_for(self, account_id: int) -> list:
        return [t for t in self.transfers if account_id in (t.from_account_id, t.to_account_id)]

    @property
    def active_plans(self) -> list:
        return [p for p in self.plans if p.active]


def load_user_ledger(s: Session, user_id: int) -> UserLedger:
    def _all(model, *order):
        return s.execute(select(model).where(model.user_id == user_id).order_by(*order)).scalars().all()

    return UserLedger(
        user_id=user_id,
        accounts=_all(Account, Account.created_at.asc(), Account.id.asc()),
        entries=_all(LedgerEntry, LedgerEntry.date.asc(), LedgerEntry.id.asc()),
        obligations=_all(RecurringObligation, RecurringObligation.next_occurrence.asc(), RecurringObligation.id.asc()),
        plans=_all(InstallmentPlan, InstallmentPlan.next_payment_date.asc(), InstallmentPlan.id.asc()),
        transfers=_all(Transfer, Transfer.date.asc(), Transfer.id.asc()),
    )


Handler = Callable[[UserLedger], None]


class Subscription:
    def __init__(self, hub: "SnapshotHub", user_id: int, handler: Handler):
        self._hub = hub
        self.user_id = user_id
        self.handler = handler
        self.active = True

    def cancel(self) -> None:
        if self.active:
            self.active = False
            self._hub._remove(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.cancel()


class SnapshotHub:
    """Push a fresh UserLedger to every live subscriber after each write.

    Delivery may repeat or arrive late; subscribers only ever derive values
    from the snapshot they are handed.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._subs: dict[int, list[Subscription]] = {}

    def subscribe(self, user_id: int, handler: Handler) -> Subscription:
        sub = Subscription(self, user_id, handler)
        with self._lock:
            self._subs.setdefault(user_id, []).append(sub)
        return sub

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            subs = self._subs.get(sub.user_id, [])
            if sub in subs:
                subs.remove(sub)
            if not subs:
                self._subs.pop(sub.user_id, None)

    def subscriber_count(self, user_id: int) -> int:
        with self._lock:
            return len(self._subs.get(user_id, []))

    def deliver(self, snapshot: UserLedger) -> int:
        with self._lock:
            subs = list(self._subs.get(snapshot.user_id, []))

        delivered = 0
        for sub in subs:
            if not sub.active:
                continue
            try:
                sub.handler(snapshot)
                delivered += 1
            except Exception as e:
                log.exception("snapshot handler failed", exc_info=e)
        return delivered

    def publish(self, s: Session, user_id: int) -> int:
        if not self.subscriber_count(user_id):
            return 0
        return self.deliver(load_user_ledger(s, user_id))


hub = SnapshotHub()
