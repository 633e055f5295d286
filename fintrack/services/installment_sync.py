from __future__ import annotations

import asyncio
import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from fintrack.core.config import settings
from fintrack.db.session import SessionLocal
from fintrack.models.user import User
from fintrack.services.installments import settle_due_debts, settle_due_plans
from fintrack.services.snapshots import hub
from fintrack.utils.timezone import today_local


def settle_user(s: Session, user_id: int, today: date) -> int:
    entries = settle_due_plans(s, user_id, today)
    debts = settle_due_debts(s, user_id, today)
    if entries or debts:
        hub.publish(s, user_id)
    return len(entries) + len(debts)


def settle_all_users(s: Session, today: date | None = None) -> int:
    today = today or today_local()
    user_ids = s.execute(select(User.id).order_by(User.id.asc())).scalars().all()

    n = 0
    for user_id in user_ids:
        try:
            n += settle_user(s, user_id, today)
        except Exception as e:
            logging.exception("installment settlement failed for user %s", user_id, exc_info=e)
    return n


def sync_installments_once() -> int:
    with SessionLocal() as s:
        return settle_all_users(s)


async def installment_sync_loop() -> None:
    if not getattr(settings, "installment_sync_enabled", True):
        return

    interval = int(getattr(settings, "installment_sync_interval_seconds", 3600) or 3600)
    await asyncio.sleep(3)

    while True:
        try:
            await asyncio.to_thread(sync_installments_once)
        except Exception as e:
            logging.exception("installment_sync failed", exc_info=e)

        await asyncio.sleep(max(60, interval))
