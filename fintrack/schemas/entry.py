from pydantic import BaseModel, field_validator
import datetime as dt
from typing import Literal

from fintrack.schemas.common import positive_finite, trim_or_none

EntryKind = Literal["income", "expense"]

class EntryCreate(BaseModel):
    account_id: int
    kind: EntryKind
    amount: float
    date: dt.date
    category: str = ""
    description: str | None = None
    recurring_obligation_id: int | None = None

    @field_validator("amount")
    @classmethod
    def amount_positive(cls, v: float):
        return positive_finite(v)

    @field_validator("description")
    @classmethod
    def description_trim(cls, v: str | None):
        return trim_or_none(v)

class EntryUpdate(BaseModel):
    account_id: int | None = None
    kind: EntryKind | None = None
    amount: float | None = None
    date: dt.date | None = None
    category: str | None = None
    description: str | None = None

    @field_validator("amount")
    @classmethod
    def amount_positive(cls, v: float | None):
        return positive_finite(v)

class EntryOut(BaseModel):
    id: int
    account_id: int | None
    kind: EntryKind
    amount: float
    date: dt.date
    category: str
    description: str | None
    installment_plan_id: int | None = None
    created_at: dt.datetime | None = None

    class Config:
        from_attributes = True
