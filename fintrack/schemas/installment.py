from pydantic import BaseModel, field_validator
from datetime import date, datetime

from fintrack.schemas.common import positive_finite

class PlanCreate(BaseModel):
    account_id: int
    description: str = ""
    total_amount: float
    installment_count: int = 3

    @field_validator("total_amount")
    @classmethod
    def amount_positive(cls, v: float):
        return positive_finite(v)

    @field_validator("installment_count")
    @classmethod
    def count_min(cls, v: int):
        if v < 1:
            raise ValueError("installment_count must be at least 1")
        return v

class PlanUpdate(BaseModel):
    total_amount: float
    installment_count: int
    description: str | None = None

    @field_validator("total_amount")
    @classmethod
    def amount_positive(cls, v: float):
        return positive_finite(v)

class PlanOut(BaseModel):
    id: int
    account_id: int
    description: str
    total_amount: float
    installment_count: int
    monthly_amount: float
    remaining_installments: int
    start_date: date
    next_payment_date: date
    active: bool
    created_at: datetime | None = None

    class Config:
        from_attributes = True

class SettleOut(BaseModel):
    entries_created: int
    debts_updated: int
