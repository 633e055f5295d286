from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fintrack.api.deps import db, current_user
from fintrack.schemas.installment import PlanCreate, PlanUpdate, PlanOut, SettleOut
from fintrack.services.audit import log_event
from fintrack.services.installments import (
    create_plan,
    edit_plan,
    advance_plan,
    cancel_plan,
    get_plan,
    list_plans,
    settle_due_plans,
    settle_due_debts,
)
from fintrack.services.snapshots import hub

router = APIRouter(prefix="/installments", tags=["installments"])


def _plan_details(p) -> dict:
    return {
        "account_id": p.account_id,
        "total_amount": p.total_amount,
        "installment_count": p.installment_count,
        "monthly_amount": p.monthly_amount,
        "remaining_installments": p.remaining_installments,
        "active": p.active,
    }


@router.get("", response_model=list[PlanOut])
def list_all(active: bool = Query(False), s: Session = Depends(db), u=Depends(current_user)):
    return list_plans(s, u["uid"], active_only=active)


@router.post("/settle", response_model=SettleOut)
def settle(s: Session = Depends(db), u=Depends(current_user)):
    entries = settle_due_plans(s, u["uid"])
    debts = settle_due_debts(s, u["uid"])
    if entries or debts:
        log_event(
            s,
            user=u,
            action="installment.settle",
            entity_type="installment_plan",
            details={"entries": [e.id for e in entries], "debts": [a.id for a in debts]},
        )
        hub.publish(s, u["uid"])
    return SettleOut(entries_created=len(entries), debts_updated=len(debts))


@router.get("/{plan_id}", response_model=PlanOut)
def get_one(plan_id: int, s: Session = Depends(db), u=Depends(current_user)):
    return get_plan(s, u["uid"], plan_id)


@router.post("", response_model=PlanOut)
def create(body: PlanCreate, s: Session = Depends(db), u=Depends(current_user)):
    p = create_plan(
        s,
        u["uid"],
        account_id=body.account_id,
        total_amount=body.total_amount,
        installment_count=body.installment_count,
        description=body.description,
    )
    log_event(
        s,
        user=u,
        action="installment.create",
        entity_type="installment_plan",
        entity_id=p.id,
        details=_plan_details(p),
    )
    hub.publish(s, u["uid"])
    return p


@router.patch("/{plan_id}", response_model=PlanOut)
def update(plan_id: int, body: PlanUpdate, s: Session = Depends(db), u=Depends(current_user)):
    p = edit_plan(
        s,
        u["uid"],
        plan_id,
        total_amount=body.total_amount,
        installment_count=body.installment_count,
        description=body.description,
    )
    log_event(
        s,
        user=u,
        action="installment.update",
        entity_type="installment_plan",
        entity_id=p.id,
        details=_plan_details(p),
    )
    hub.publish(s, u["uid"])
    return p


@router.post("/{plan_id}/advance", response_model=PlanOut)
def advance(plan_id: int, s: Session = Depends(db), u=Depends(current_user)):
    p = advance_plan(s, u["uid"], plan_id)
    log_event(
        s,
        user=u,
        action="installment.advance",
        entity_type="installment_plan",
        entity_id=p.id,
        details=_plan_details(p),
    )
    hub.publish(s, u["uid"])
    return p


@router.post("/{plan_id}/cancel", response_model=PlanOut)
def cancel(plan_id: int, s: Session = Depends(db), u=Depends(current_user)):
    p = cancel_plan(s, u["uid"], plan_id)
    log_event(
        s,
        user=u,
        action="installment.cancel",
        entity_type="installment_plan",
        entity_id=p.id,
    )
    hub.publish(s, u["uid"])
    return p
