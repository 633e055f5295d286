from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fintrack.api.deps import db, current_user
from fintrack.schemas.entry import EntryCreate, EntryUpdate, EntryOut, EntryKind
from fintrack.services.audit import log_event
from fintrack.services.ledger import create_entry, edit_entry, delete_entry, get_entry, list_entries
from fintrack.services.snapshots import hub

router = APIRouter(prefix="/entries", tags=["entries"])


@router.get("", response_model=list[EntryOut])
def list_all(
    account_id: int | None = Query(None),
    kind: EntryKind | None = Query(None),
    start: date | None = Query(None),
    end: date | None = Query(None),
    s: Session = Depends(db),
    u=Depends(current_user),
):
    return list_entries(s, u["uid"], account_id=account_id, kind=kind, start=start, end=end)


@router.get("/{entry_id}", response_model=EntryOut)
def get_one(entry_id: int, s: Session = Depends(db), u=Depends(current_user)):
    return get_entry(s, u["uid"], entry_id)


@router.post("", response_model=EntryOut)
def create(body: EntryCreate, s: Session = Depends(db), u=Depends(current_user)):
    e = create_entry(
        s,
        u["uid"],
        account_id=body.account_id,
        kind=body.kind,
        amount=body.amount,
        day=body.date,
        category=body.category,
        description=body.description,
        recurring_obligation_id=body.recurring_obligation_id,
    )
    log_event(
        s,
        user=u,
        action="entry.create",
        entity_type="entry",
        entity_id=e.id,
        details={
            "account_id": e.account_id,
            "kind": e.kind,
            "amount": e.amount,
            "date": e.date,
            "category": e.category,
            "recurring_obligation_id": body.recurring_obligation_id,
        },
    )
    hub.publish(s, u["uid"])
    return e


@router.patch("/{entry_id}", response_model=EntryOut)
def update(entry_id: int, body: EntryUpdate, s: Session = Depends(db), u=Depends(current_user)):
    changes = body.model_dump(exclude_unset=True)
    if "date" in changes:
        changes["day"] = changes.pop("date")
    e = edit_entry(s, u["uid"], entry_id, **changes)
    log_event(
        s,
        user=u,
        action="entry.update",
        entity_type="entry",
        entity_id=e.id,
        details=changes,
    )
    hub.publish(s, u["uid"])
    return e


@router.delete("/{entry_id}")
def delete(entry_id: int, s: Session = Depends(db), u=Depends(current_user)):
    delete_entry(s, u["uid"], entry_id)
    log_event(s, user=u, action="entry.delete", entity_type="entry", entity_id=entry_id)
    hub.publish(s, u["uid"])
    return {"ok": True}
