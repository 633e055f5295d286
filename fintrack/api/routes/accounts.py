from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fintrack.api.deps import db, current_user
from fintrack.models.account import Account, REVOLVING_CREDIT
from fintrack.schemas.account import AccountCreate, AccountUpdate, AccountOut, BalanceOut
from fintrack.services.accounts import create_account, update_account, delete_account, list_accounts
from fintrack.services.audit import log_event
from fintrack.services.ledger import get_account, refresh_balance, refresh_all_balances
from fintrack.services.snapshots import hub
from fintrack.services.transfers import credit_headroom
from fintrack.utils.timezone import now_local

router = APIRouter(prefix="/accounts", tags=["accounts"])


def _out(acc: Account) -> AccountOut:
    out = AccountOut.model_validate(acc)
    if acc.kind == REVOLVING_CREDIT:
        out.available_credit = float(credit_headroom(acc))
    return out


@router.get("", response_model=list[AccountOut])
def list_all(s: Session = Depends(db), u=Depends(current_user)):
    return [_out(a) for a in list_accounts(s, u["uid"])]


@router.get("/{account_id}", response_model=AccountOut)
def get_one(account_id: int, s: Session = Depends(db), u=Depends(current_user)):
    return _out(get_account(s, u["uid"], account_id))


@router.post("", response_model=AccountOut)
def create(body: AccountCreate, s: Session = Depends(db), u=Depends(current_user)):
    acc = create_account(
        s,
        u["uid"],
        name=body.name,
        kind=body.kind,
        opening_balance=body.balance,
        credit_limit=body.credit_limit,
        total_debt=body.total_debt,
        monthly_payment=body.monthly_payment,
        remaining_months=body.remaining_months,
        next_payment_date=body.next_payment_date,
    )
    log_event(
        s,
        user=u,
        action="account.create",
        entity_type="account",
        entity_id=acc.id,
        details={"name": acc.name, "kind": acc.kind, "balance": acc.balance},
    )
    hub.publish(s, u["uid"])
    return _out(acc)


@router.patch("/{account_id}", response_model=AccountOut)
def update(account_id: int, body: AccountUpdate, s: Session = Depends(db), u=Depends(current_user)):
    changes = body.model_dump(exclude_unset=True)
    acc = update_account(s, u["uid"], account_id, **changes)
    log_event(
        s,
        user=u,
        action="account.update",
        entity_type="account",
        entity_id=acc.id,
        details=changes,
    )
    hub.publish(s, u["uid"])
    return _out(acc)


@router.delete("/{account_id}")
def delete(account_id: int, s: Session = Depends(db), u=Depends(current_user)):
    acc = delete_account(s, u["uid"], account_id)
    log_event(
        s,
        user=u,
        action="account.delete",
        entity_type="account",
        entity_id=account_id,
        details={"name": acc.name, "kind": acc.kind},
    )
    hub.publish(s, u["uid"])
    return {"ok": True}


@router.post("/recompute", response_model=list[BalanceOut])
def recompute_all(s: Session = Depends(db), u=Depends(current_user)):
    balances = refresh_all_balances(s, u["uid"])
    hub.publish(s, u["uid"])
    as_of = now_local()
    return [BalanceOut(account_id=aid, balance=float(bal), as_of=as_of) for aid, bal in sorted(balances.items())]


@router.post("/{account_id}/recompute", response_model=BalanceOut)
def recompute_balance(account_id: int, s: Session = Depends(db), u=Depends(current_user)):
    try:
        bal = refresh_balance(s, u["uid"], account_id)
        s.commit()
    except Exception:
        s.rollback()
        raise
    hub.publish(s, u["uid"])
    return BalanceOut(account_id=account_id, balance=float(bal), as_of=now_local())
