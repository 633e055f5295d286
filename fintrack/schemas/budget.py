from pydantic import BaseModel
from datetime import date

class UpcomingLineOut(BaseModel):
    kind: str
    source: str
    source_id: int
    label: str
    amount: float
    due: date
    overdue: bool

    class Config:
        from_attributes = True

class BudgetOut(BaseModel):
    free_money: float
    daily_budget: float
    period_upcoming_expenses: float
    period_upcoming_incomes: float
    net_monthly_disposable: float
    asset_total: float
    credit_headroom: float
    total_debt: float
    monthly_income: float
    monthly_expense: float
    monthly_installments: float
    period_end: date
    days_remaining: int
    upcoming: list[UpcomingLineOut] = []

    class Config:
        from_attributes = True
