from pydantic import BaseModel, field_validator, model_validator
import datetime as dt

from fintrack.schemas.common import positive_finite

class TransferCreate(BaseModel):
    from_account_id: int
    to_account_id: int
    amount: float
    description: str = ""

    @field_validator("amount")
    @classmethod
    def amount_positive(cls, v: float):
        return positive_finite(v)

    @model_validator(mode="after")
    def distinct_accounts(self):
        if self.from_account_id == self.to_account_id:
            raise ValueError("source and destination accounts must differ")
        return self

class TransferOut(BaseModel):
    id: int
    from_account_id: int | None
    to_account_id: int | None
    amount: float
    date: dt.date
    description: str
    created_at: dt.datetime | None = None

    class Config:
        from_attributes = True
