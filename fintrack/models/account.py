from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Integer, Date, DateTime, func, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column
from fintrack.db.base import Base

ASSET = "asset"
REVOLVING_CREDIT = "revolving_credit"
INSTALLMENT_DEBT = "installment_debt"

ACCOUNT_KINDS = (ASSET, REVOLVING_CREDIT, INSTALLMENT_DEBT)
DEBT_KINDS = (REVOLVING_CREDIT, INSTALLMENT_DEBT)


class Account(Base):
    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)

    name: Mapped[str] = mapped_column(String(128))
    kind: Mapped[str] = mapped_column(String(24))
    balance: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))

    # revolving credit
    credit_limit: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)

    # installment debt
    total_debt: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    monthly_payment: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    remaining_months: Mapped[int | None] = mapped_column(Integer, nullable=True)
    next_payment_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    paid_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
