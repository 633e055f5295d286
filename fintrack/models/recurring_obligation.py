from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Integer, Date, DateTime, func, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column
from fintrack.db.base import Base

WEEKLY = "weekly"
BIWEEKLY = "biweekly"
MONTHLY = "monthly"

FREQUENCIES = (WEEKLY, BIWEEKLY, MONTHLY)


class RecurringObligation(Base):
    __tablename__ = "recurring_obligations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)

    name: Mapped[str] = mapped_column(String(128))
    kind: Mapped[str] = mapped_column(String(16))
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    frequency: Mapped[str] = mapped_column(String(16), default=MONTHLY)
    next_occurrence: Mapped[date] = mapped_column(Date, index=True)
    category: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
