from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fintrack.api.deps import db, current_user
from fintrack.schemas.budget import BudgetOut
from fintrack.services.budget import project_user_budget
from fintrack.services.snapshots import load_user_ledger

router = APIRouter(prefix="/budget", tags=["budget"])


@router.get("", response_model=BudgetOut)
def budget(
    period_end: date | None = Query(None),
    today: date | None = Query(None),
    s: Session = Depends(db),
    u=Depends(current_user),
):
    ledger = load_user_ledger(s, u["uid"])
    return project_user_budget(ledger, period_end=period_end, today=today)
