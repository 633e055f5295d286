from __future__ import annotations

from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from fintrack.core.errors import ObligationNotFound, ValidationError
from fintrack.models.ledger_entry import ENTRY_KINDS, EXPENSE
from fintrack.models.recurring_obligation import RecurringObligation, FREQUENCIES
from fintrack.utils.money import d2, to_dec


def _validate(kind: str, amount, frequency: str) -> None:
    if kind not in ENTRY_KINDS:
        raise ValidationError("entry_kind_invalid", f"unknown obligation kind {kind!r}")
    if frequency not in FREQUENCIES:
        raise ValidationError("frequency_invalid", f"unknown frequency {frequency!r}")
    if to_dec(amount) <= 0:
        raise ValidationError("amount_not_positive", "amount must be greater than zero")


def get_obligation(s: Session, user_id: int, obligation_id: int) -> RecurringObligation:
    ob = s.execute(
        select(RecurringObligation).where(
            RecurringObligation.id == obligation_id,
            RecurringObligation.user_id == user_id,
        )
    ).scalar_one_or_none()
    if ob is None:
        raise ObligationNotFound()
    return ob


def list_obligations(s: Session, user_id: int, kind: str | None = None) -> list[RecurringObligation]:
    q = select(RecurringObligation).where(RecurringObligation.user_id == user_id)
    if kind is not None:
        q = q.where(RecurringObligation.kind == kind)
    return s.execute(
        q.order_by(RecurringObligation.next_occurrence.asc(), RecurringObligation.id.asc())
    ).scalars().all()


def create_obligation(
    s: Session,
    user_id: int,
    name: str,
    kind: str,
    amount,
    frequency: str,
    next_occurrence: date,
    category: str | None = None,
) -> RecurringObligation:
    nm = (name or "").strip()
    if not nm:
        raise ValidationError("name_required", "name is required")
    _validate(kind, amount, frequency)

    ob = RecurringObligation(
        user_id=user_id,
        name=nm,
        kind=kind,
        amount=d2(to_dec(amount)),
        frequency=frequency,
        next_occurrence=next_occurrence,
        # incomes carry no category
        category=((category or "").strip() or None) if kind == EXPENSE else None,
    )
    try:
        s.add(ob)
        s.commit()
    except Exception:
        s.rollback()
        raise
    s.refresh(ob)
    return ob


def update_obligation(s: Session, user_id: int, obligation_id: int, **changes) -> RecurringObligation:
    try:
        ob = get_obligation(s, user_id, obligation_id)
        if changes.get("name") is not None:
            nm = changes["name"].strip()
            if not nm:
                raise ValidationError("name_required", "name is required")
            ob.name = nm

        amount = changes.get("amount") if changes.get("amount") is not None else ob.amount
        frequency = changes.get("frequency") or ob.frequency
        _validate(ob.kind, amount, frequency)
        ob.amount = d2(to_dec(amount))
        ob.frequency = frequency

        if changes.get("next_occurrence") is not None:
            ob.next_occurrence = changes["next_occurrence"]
        if "category" in changes and ob.kind == EXPENSE:
            ob.category = (changes["category"] or "").strip() or None

        s.add(ob)
        s.commit()
    except Exception:
        s.rollback()
        raise
    s.refresh(ob)
    return ob


def delete_obligation(s: Session, user_id: int, obligation_id: int) -> RecurringObligation:
    try:
        ob = get_obligation(s, user_id, obligation_id)
        s.delete(ob)
        s.commit()
    except Exception:
        s.rollback()
        raise
    return ob
