from datetime import date, datetime
from decimal import Decimal

from sqlalchemy.orm import Session
from fintrack.models.audit_log import AuditLog


def _jsonable(v):
    if isinstance(v, Decimal):
        return str(v)
    if isinstance(v, (date, datetime)):
        return v.isoformat()
    if isinstance(v, dict):
        return {k: _jsonable(x) for k, x in v.items()}
    if isinstance(v, (list, tuple)):
        return [_jsonable(x) for x in v]
    return v


def log_event(
    s: Session,
    user: dict,
    action: str,
    entity_type: str,
    entity_id: int | None = None,
    details: dict | None = None,
):
    """Record one mutation. Runs after the mutation itself has committed."""
    row = AuditLog(
        user_id=user.get("uid"),
        username=user.get("sub") or "",
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=_jsonable(details) if details is not None else None,
    )
    s.add(row)
    s.commit()
    return row
