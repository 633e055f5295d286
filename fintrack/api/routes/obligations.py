from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fintrack.api.deps import db, current_user
from fintrack.models.recurring_obligation import RecurringObligation
from fintrack.schemas.obligation import ObligationCreate, ObligationUpdate, ObligationOut, MonthlySummaryOut
from fintrack.services.audit import log_event
from fintrack.services.installments import list_plans, monthly_installments_total
from fintrack.services.obligations import (
    create_obligation,
    update_obligation,
    delete_obligation,
    get_obligation,
    list_obligations,
)
from fintrack.services.recurring import monthly_equivalent, monthly_totals
from fintrack.services.snapshots import hub

router = APIRouter(prefix="/obligations", tags=["obligations"])


def _out(ob: RecurringObligation) -> ObligationOut:
    out = ObligationOut.model_validate(ob)
    out.monthly_equivalent = float(monthly_equivalent(ob))
    return out


@router.get("", response_model=list[ObligationOut])
def list_all(
    kind: str | None = Query(None),
    s: Session = Depends(db),
    u=Depends(current_user),
):
    return [_out(ob) for ob in list_obligations(s, u["uid"], kind=kind)]


@router.get("/summary", response_model=MonthlySummaryOut)
def summary(s: Session = Depends(db), u=Depends(current_user)):
    income, expense = monthly_totals(list_obligations(s, u["uid"]))
    installments = monthly_installments_total(list_plans(s, u["uid"], active_only=True))
    return MonthlySummaryOut(
        monthly_income=float(income),
        monthly_expense=float(expense),
        monthly_installments=float(installments),
        net_monthly_disposable=float(income - (expense + installments)),
    )


@router.get("/{obligation_id}", response_model=ObligationOut)
def get_one(obligation_id: int, s: Session = Depends(db), u=Depends(current_user)):
    return _out(get_obligation(s, u["uid"], obligation_id))


@router.post("", response_model=ObligationOut)
def create(body: ObligationCreate, s: Session = Depends(db), u=Depends(current_user)):
    ob = create_obligation(
        s,
        u["uid"],
        name=body.name,
        kind=body.kind,
        amount=body.amount,
        frequency=body.frequency,
        next_occurrence=body.next_occurrence,
        category=body.category,
    )
    log_event(
        s,
        user=u,
        action="obligation.create",
        entity_type="obligation",
        entity_id=ob.id,
        details={"name": ob.name, "kind": ob.kind, "amount": ob.amount, "frequency": ob.frequency},
    )
    hub.publish(s, u["uid"])
    return _out(ob)


@router.patch("/{obligation_id}", response_model=ObligationOut)
def update(obligation_id: int, body: ObligationUpdate, s: Session = Depends(db), u=Depends(current_user)):
    changes = body.model_dump(exclude_unset=True)
    ob = update_obligation(s, u["uid"], obligation_id, **changes)
    log_event(
        s,
        user=u,
        action="obligation.update",
        entity_type="obligation",
        entity_id=ob.id,
        details=changes,
    )
    hub.publish(s, u["uid"])
    return _out(ob)


@router.delete("/{obligation_id}")
def delete(obligation_id: int, s: Session = Depends(db), u=Depends(current_user)):
    ob = delete_obligation(s, u["uid"], obligation_id)
    log_event(
        s,
        user=u,
        action="obligation.delete",
        entity_type="obligation",
        entity_id=obligation_id,
        details={"name": ob.name},
    )
    hub.publish(s, u["uid"])
    return {"ok": True}
