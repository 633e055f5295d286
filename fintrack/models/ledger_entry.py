import datetime as dt
from decimal import Decimal

from sqlalchemy import Integer, Date, DateTime, func, ForeignKey, Numeric, String, Index
from sqlalchemy.orm import Mapped, mapped_column
from fintrack.db.base import Base

INCOME = "income"
EXPENSE = "expense"

ENTRY_KINDS = (INCOME, EXPENSE)


class LedgerEntry(Base):
    __tablename__ = "ledger_entries"

    # id doubles as the insertion sequence that breaks same-day ties on replay
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    account_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True, index=True
    )

    kind: Mapped[str] = mapped_column(String(16))
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    date: Mapped[dt.date] = mapped_column(Date, index=True)
    category: Mapped[str] = mapped_column(String(64), default="")
    description: Mapped[str | None] = mapped_column(String(256), nullable=True)

    installment_plan_id: Mapped[int | None] = mapped_column(
        ForeignKey("installment_plans.id", ondelete="SET NULL"), nullable=True, index=True
    )

    created_at: Mapped[dt.datetime] = mapped_column(DateTime, server_default=func.now())

    @property
    def is_installment(self) -> bool:
        return self.installment_plan_id is not None


Index("ix_ledger_entries_account_date", LedgerEntry.account_id, LedgerEntry.date)
