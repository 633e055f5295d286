from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, time
from decimal import Decimal

import xlsxwriter

from fintrack.models.account import ASSET, REVOLVING_CREDIT, INSTALLMENT_DEBT
from fintrack.models.ledger_entry import INCOME, EXPENSE
from fintrack.services.accounts import OPENING_CATEGORY
from fintrack.utils.money import ZERO, d2, to_dec

KIND_LABELS = {
    ASSET: "Asset",
    REVOLVING_CREDIT: "Revolving credit",
    INSTALLMENT_DEBT: "Installment debt",
}


def _month_key(d: date) -> tuple[int, int]:
    return (d.year, d.month)


def _in_range(entries, start: date, end: date, include_opening: bool = False) -> list:
    out = []
    for e in entries:
        if e.account_id is None or not (start <= e.date <= end):
            continue
        if not include_opening and e.category == OPENING_CATEGORY:
            continue
        out.append(e)
    return out


def totals_by_category(entries, start: date, end: date) -> dict[str, dict[str, Decimal]]:
    out: dict[str, dict[str, Decimal]] = defaultdict(lambda: {INCOME: ZERO, EXPENSE: ZERO})
    for e in _in_range(entries, start, end):
        out[e.category or "Uncategorized"][e.kind] += to_dec(e.amount)
    return {k: {kind: d2(v) for kind, v in row.items()} for k, row in sorted(out.items())}


def totals_by_month(entries, start: date, end: date) -> dict[tuple[int, int], dict[str, Decimal]]:
    out: dict[tuple[int, int], dict[str, Decimal]] = defaultdict(lambda: {INCOME: ZERO, EXPENSE: ZERO})
    for e in _in_range(entries, start, end):
        out[_month_key(e.date)][e.kind] += to_dec(e.amount)
    return {k: {kind: d2(v) for kind, v in row.items()} for k, row in sorted(out.items())}


def build_summary_report(ledger, start: date, end: date, out_file):
    entries = _in_range(ledger.entries, start, end)
    by_category = totals_by_category(ledger.entries, start, end)
    by_month = totals_by_month(ledger.entries, start, end)
    accounts_by_id = {a.id: a for a in ledger.accounts}

    wb = xlsxwriter.Workbook(out_file, {"in_memory": True})
    base_font = "Calibri"

    meta_label = wb.add_format({"bold": True, "font_name": base_font, "font_size": 11, "font_color": "#334155"})
    subtle = wb.add_format({"font_name": base_font, "font_size": 10, "font_color": "#64748b"})
    title = wb.add_format({"bold": True, "font_name": base_font, "font_size": 14, "font_color": "#0f172a"})
    header = wb.add_format(
        {
            "bold": True,
            "font_name": base_font,
            "font_size": 11,
            "bg_color": "#F1F5F9",
            "border": 1,
            "align": "center",
            "valign": "vcenter",
        }
    )
    date_fmt = wb.add_format({"font_name": base_font, "font_size": 11, "num_format": "yyyy-mm-dd", "border": 1})
    money2 = wb.add_format(
        {"font_name": base_font, "font_size": 11, "num_format": "#,##0.00", "border": 1, "align": "right"}
    )
    text_cell = wb.add_format({"font_name": base_font, "font_size": 11, "border": 1, "align": "left"})
    total_label = wb.add_format(
        {"bold": True, "font_name": base_font, "font_size": 11, "bg_color": "#F8FAFC", "border": 1}
    )
    total_money2 = wb.add_format(
        {
            "bold": True,
            "font_name": base_font,
            "font_size": 11,
            "bg_color": "#F8FAFC",
            "border": 1,
            "num_format": "#,##0.00",
            "align": "right",
        }
    )

    def _range_header(ws, label: str):
        ws.write(0, 0, label, title)
        ws.write(1, 0, "Range", meta_label)
        ws.write(1, 1, f"{start} to {end}", subtle)
        ws.write(1, 3, "Generated", meta_label)
        ws.write(1, 4, datetime.now().strftime("%Y-%m-%d %H:%M"), subtle)

    def _headers(ws, row: int, names: list[str]):
        ws.set_row(row, 18)
        for c, h in enumerate(names):
            ws.write(row, c, h, header)
        ws.freeze_panes(row + 1, 1)

    # Sheet 1: income and expense by category
    cat_ws = wb.add_worksheet("By Category")
    cat_ws.set_column(0, 0, 24)
    cat_ws.set_column(1, 3, 16)
    _range_header(cat_ws, "Income & Expenses by Category")
    _headers(cat_ws, 3, ["Category", "Income", "Expense", "Net"])

    r = 4
    for category, row in by_category.items():
        cat_ws.write(r, 0, category, text_cell)
        cat_ws.write_number(r, 1, float(row[INCOME]), money2)
        cat_ws.write_number(r, 2, float(row[EXPENSE]), money2)
        cat_ws.write_formula(r, 3, f"=B{r + 1}-C{r + 1}", money2)
        r += 1
    if r > 4:
        cat_ws.write(r, 0, "Totals", total_label)
        for c, col in ((1, "B"), (2, "C"), (3, "D")):
            cat_ws.write_formula(r, c, f"=SUM({col}5:{col}{r})", total_money2)

    # Sheet 2: month by month
    month_ws = wb.add_worksheet("Monthly Totals")
    month_ws.set_column(0, 0, 10)
    month_ws.set_column(1, 3, 16)
    _range_header(month_ws, "Monthly Totals")
    _headers(month_ws, 3, ["Month", "Income", "Expense", "Net"])

    r = 4
    for (yy, mm), row in by_month.items():
        month_ws.write(r, 0, f"{yy:04d}-{mm:02d}", text_cell)
        month_ws.write_number(r, 1, float(row[INCOME]), money2)
        month_ws.write_number(r, 2, float(row[EXPENSE]), money2)
        month_ws.write_formula(r, 3, f"=B{r + 1}-C{r + 1}", money2)
        r += 1
    if r > 4:
        month_ws.write(r, 0, "Totals", total_label)
        for c, col in ((1, "B"), (2, "C"), (3, "D")):
            month_ws.write_formula(r, c, f"=SUM({col}5:{col}{r})", total_money2)

    # Sheet 3: account balances as of now
    acc_ws = wb.add_worksheet("Accounts")
    acc_ws.set_column(0, 0, 28)
    acc_ws.set_column(1, 1, 18)
    acc_ws.set_column(2, 3, 16)
    _range_header(acc_ws, "Account Balances")
    _headers(acc_ws, 3, ["Account", "Kind", "Balance", "Limit / Total"])

    r = 4
    for a in ledger.accounts:
        acc_ws.write(r, 0, a.name, text_cell)
        acc_ws.write(r, 1, KIND_LABELS.get(a.kind, a.kind), text_cell)
        acc_ws.write_number(r, 2, float(to_dec(a.balance)), money2)
        cap = a.credit_limit if a.kind == REVOLVING_CREDIT else a.total_debt
        if cap is not None:
            acc_ws.write_number(r, 3, float(to_dec(cap)), money2)
        else:
            acc_ws.write_blank(r, 3, None, text_cell)
        r += 1

    # Sheet 4: entry detail
    tx_ws = wb.add_worksheet("Entries")
    tx_ws.set_column(0, 0, 12)
    tx_ws.set_column(1, 2, 20)
    tx_ws.set_column(3, 3, 10)
    tx_ws.set_column(4, 4, 16)
    tx_ws.set_column(5, 5, 32)
    _range_header(tx_ws, "Entries")
    _headers(tx_ws, 3, ["Date", "Account", "Category", "Kind", "Amount", "Description"])

    r = 4
    for e in sorted(entries, key=lambda x: (x.date, x.id)):
        acc = accounts_by_id.get(e.account_id)
        tx_ws.write_datetime(r, 0, datetime.combine(e.date, time.min), date_fmt)
        tx_ws.write(r, 1, acc.name if acc else "Deleted account", text_cell)
        tx_ws.write(r, 2, e.category or "", text_cell)
        tx_ws.write(r, 3, e.kind, text_cell)
        amt = float(to_dec(e.amount))
        tx_ws.write_number(r, 4, amt if e.kind == INCOME else -amt, money2)
        tx_ws.write(r, 5, e.description or "", text_cell)
        r += 1
    if r > 4:
        tx_ws.autofilter(3, 0, r - 1, 5)

    wb.close()
