from pydantic import BaseModel, field_validator, model_validator
from datetime import date, datetime
from typing import Literal

from fintrack.schemas.common import positive_finite, trim_or_none

Frequency = Literal["weekly", "biweekly", "monthly"]

class ObligationCreate(BaseModel):
    name: str
    kind: Literal["income", "expense"]
    amount: float
    frequency: Frequency = "monthly"
    next_occurrence: date
    category: str | None = None

    @field_validator("amount")
    @classmethod
    def amount_positive(cls, v: float):
        return positive_finite(v)

    @field_validator("name")
    @classmethod
    def name_required(cls, v: str):
        v = v.strip()
        if not v:
            raise ValueError("name is required")
        return v

    @model_validator(mode="after")
    def category_only_for_expenses(self):
        self.category = trim_or_none(self.category) if self.kind == "expense" else None
        return self

class ObligationUpdate(BaseModel):
    name: str | None = None
    amount: float | None = None
    frequency: Frequency | None = None
    next_occurrence: date | None = None
    category: str | None = None

    @field_validator("amount")
    @classmethod
    def amount_positive(cls, v: float | None):
        return positive_finite(v)

class ObligationOut(BaseModel):
    id: int
    name: str
    kind: str
    amount: float
    frequency: Frequency
    next_occurrence: date
    category: str | None
    monthly_equivalent: float | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True

class MonthlySummaryOut(BaseModel):
    monthly_income: float
    monthly_expense: float
    monthly_installments: float
    net_monthly_disposable: float
