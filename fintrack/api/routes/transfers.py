from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fintrack.api.deps import db, current_user
from fintrack.schemas.transfer import TransferCreate, TransferOut
from fintrack.services.audit import log_event
from fintrack.services.snapshots import hub
from fintrack.services.transfers import create_transfer, list_transfers

router = APIRouter(prefix="/transfers", tags=["transfers"])


@router.get("", response_model=list[TransferOut])
def list_all(account_id: int | None = Query(None), s: Session = Depends(db), u=Depends(current_user)):
    return list_transfers(s, u["uid"], account_id=account_id)


@router.post("", response_model=TransferOut)
def create(body: TransferCreate, s: Session = Depends(db), u=Depends(current_user)):
    t = create_transfer(
        s,
        u["uid"],
        from_account_id=body.from_account_id,
        to_account_id=body.to_account_id,
        amount=body.amount,
        description=body.description,
    )
    log_event(
        s,
        user=u,
        action="transfer.create",
        entity_type="transfer",
        entity_id=t.id,
        details={
            "from_account_id": t.from_account_id,
            "to_account_id": t.to_account_id,
            "amount": t.amount,
            "date": t.date,
        },
    )
    hub.publish(s, u["uid"])
    return t
