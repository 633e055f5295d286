from datetime import date, timedelta

from dateutil.relativedelta import relativedelta


def next_month_start(d: date) -> date:
    if d.month == 12:
        return date(d.year + 1, 1, 1)
    return date(d.year, d.month + 1, 1)


def end_of_month(d: date) -> date:
    return next_month_start(d) - timedelta(days=1)


def add_months(d: date, months: int = 1) -> date:
    # relativedelta clamps Jan 31 + 1 month to the last day of February
    return d + relativedelta(months=months)
