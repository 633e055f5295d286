from pydantic import BaseModel, field_validator
from datetime import date, datetime
from typing import Literal

AccountKind = Literal["asset", "revolving_credit", "installment_debt"]

class AccountCreate(BaseModel):
    name: str
    kind: AccountKind = "asset"
    balance: float = 0.0
    credit_limit: float | None = None
    total_debt: float | None = None
    monthly_payment: float | None = None
    remaining_months: int | None = None
    next_payment_date: date | None = None

    @field_validator("name")
    @classmethod
    def name_required(cls, v: str):
        v = v.strip()
        if not v:
            raise ValueError("name is required")
        return v

class AccountUpdate(BaseModel):
    name: str | None = None
    credit_limit: float | None = None
    total_debt: float | None = None
    monthly_payment: float | None = None
    remaining_months: int | None = None
    next_payment_date: date | None = None

class AccountOut(BaseModel):
    id: int
    name: str
    kind: AccountKind
    balance: float
    credit_limit: float | None = None
    available_credit: float | None = None
    total_debt: float | None = None
    monthly_payment: float | None = None
    remaining_months: int | None = None
    next_payment_date: date | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True

class BalanceOut(BaseModel):
    account_id: int
    balance: float
    as_of: datetime | None = None
