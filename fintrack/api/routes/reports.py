from datetime import date
from io import BytesIO

from fastapi import APIRouter, Depends, Query, HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from fintrack.api.deps import db, current_user
from fintrack.services.reports import build_summary_report
from fintrack.services.snapshots import load_user_ledger

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/summary")
def summary(
    start: date = Query(...),
    end: date = Query(...),
    s: Session = Depends(db),
    u=Depends(current_user),
):
    if end < start:
        raise HTTPException(status_code=400, detail="date_range_invalid")

    buf = BytesIO()
    build_summary_report(load_user_ledger(s, u["uid"]), start, end, buf)
    buf.seek(0)

    filename = f"summary_{start}_to_{end}.xlsx"
    return StreamingResponse(
        buf,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
