"""
Excel workbook for trade reports and exports.
"""
import io
from datetime import datetime, timezone
from typing import List, Optional, Sequence
import openpyxl
from openpyxl.styles import Alignment, Border, Font, PatternFill, Protection, Side
from openpyxl.utils import get_column_letter
from tradejournal.models.trade import Trade, TradeType

EXPORT_COLUMNS = [
    ("#", 10),
    ("Date", 18),
    ("Currency Pair", 20),
    ("Trade Type", 18),
    ("Entry Time", 15),
    ("Exit Time", 15),
    ("Duration (m)", 18),
    ("Entry Price", 18),
    ("Exit Price", 18),
    ("Net Pips", 15),
    ("Lot Size", 15),
    ("P/L", 18),
    ("Currency", 15),
    ("Tags", 30),
    ("Notes", 50),
]
CENTERED_COLUMNS = {"Duration (m)", "Lot Size", "Tags"}

HEADER_FILL = PatternFill(fill_type="solid", fgColor="FF2E75B6")
HEADER_FONT = Font(bold=True, color="FFFFFFFF", size=12)
INFO_FILL = PatternFill(fill_type="solid", fgColor="FFE6E6E6")
WIN_FILL = PatternFill(fill_type="solid", fgColor="FFC6EFCE")
LOSS_FILL = PatternFill(fill_type="solid", fgColor="FFFFC7CE")
GREEN = "FF008000"
RED = "FFFF0000"
THIN = Side(style="thin", color="FF000000")


def _price_decimals(currency_pair: str) -> int:
    return 3 if "JPY" in currency_pair.upper() else 5


def calculate_summary(trades: Sequence[Trade]) -> dict:
    """Pip-based performance block shown under the trade rows and in report emails."""
    total = len(trades)
    positive = [t.pips for t in trades if t.pips is not None and t.pips > 0]
    negative = [t.pips for t in trades if t.pips is not None and t.pips < 0]
    durations = [t.duration for t in trades if t.duration is not None]

    return {
        "total_trades": total,
        "positive_trades": len(positive),
        "negative_trades": len(negative),
        "win_rate": round(len(positive) / total * 100, 1) if total else 0.0,
        "avg_positive_pips": round(sum(positive) / len(positive), 1) if positive else 0.0,
        "avg_negative_pips": round(sum(negative) / len(negative), 1) if negative else 0.0,
        "avg_duration": round(sum(durations) / len(durations), 1) if durations else 0.0,
        "net_pips": round(sum(t.pips or 0.0 for t in trades), 1),
    }


def summary_rows(summary: dict) -> List[tuple]:
    """Labelled rows, in display order."""
    return [
        ("Number of Trades", summary["total_trades"]),
        ("Number of Positive Trades", summary["positive_trades"]),
        ("Number of Negative Trades", summary["negative_trades"]),
        ("Average Positive Pips", summary["avg_positive_pips"]),
        ("Average Negative Pips", summary["avg_negative_pips"]),
        ("Average Time (Duration)", f"{summary['avg_duration']} m"),
        ("Net Pips", summary["net_pips"]),
        ("Percentage of Positive (Win Rate)", f"{summary['win_rate']}%"),
    ]


def _trade_row(index: int, trade: Trade) -> list:
    decimals = _price_decimals(trade.currency_pair)
    return [
        index,
        trade.date.strftime("%b %d, %Y") if trade.date else "-",
        trade.currency_pair or "-",
        TradeType(trade.trade_type).value if trade.trade_type else "-",
        trade.entry_time.strftime("%H:%M") if trade.entry_time else "-",
        trade.exit_time.strftime("%H:%M") if trade.exit_time else "-",
        trade.duration if trade.duration is not None else "-",
        round(trade.entry_price, decimals) if trade.entry_price is not None else "-",
        round(trade.exit_price, decimals) if trade.exit_price is not None else "-",
        trade.pips if trade.pips is not None else "-",
        round(trade.lot_size, 2) if trade.lot_size is not None else "-",
        round(trade.profit_loss, 2) if trade.profit_loss is not None else "-",
        trade.currency or "AUD",
        ", ".join(trade.tags) if trade.tags else "-",
        trade.notes or "-",
    ]


def build_trade_workbook(
    trades: Sequence[Trade],
    report_type: str,
    period_label: str,
    generated_at: Optional[datetime] = None,
) -> bytes:
    """
    Build the report workbook and return the .xlsx bytes.

    Trade cells stay editable; the summary block is locked and the sheet is
    protected.
    """
    generated_at = generated_at or datetime.now(timezone.utc)
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Trade Report"

    for col, (header, width) in enumerate(EXPORT_COLUMNS, 1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.alignment = Alignment(horizontal="center" if header in CENTERED_COLUMNS else "left", vertical="center")
        cell.border = Border(top=THIN, bottom=THIN, left=THIN, right=THIN)
        ws.column_dimensions[get_column_letter(col)].width = width

    headers = [header for header, _ in EXPORT_COLUMNS]
    pips_col = headers.index("Net Pips") + 1
    pl_col = headers.index("P/L") + 1

    for row_num, trade in enumerate(trades, 2):
        for col, value in enumerate(_trade_row(row_num - 1, trade), 1):
            cell = ws.cell(row=row_num, column=col, value=value)
            cell.protection = Protection(locked=False)
            if headers[col - 1] in CENTERED_COLUMNS:
                cell.alignment = Alignment(horizontal="center")
            elif col == 1:
                cell.alignment = Alignment(horizontal="left")
        if trade.pips is not None:
            ws.cell(row=row_num, column=pips_col).font = Font(color=GREEN if trade.pips >= 0 else RED)
        if trade.profit_loss is not None:
            pl_cell = ws.cell(row=row_num, column=pl_col)
            pl_cell.font = Font(color=GREEN if trade.profit_loss >= 0 else RED)
            pl_cell.alignment = Alignment(horizontal="right")

    row = len(trades) + 3
    summary = calculate_summary(trades)
    for label, value in summary_rows(summary):
        label_cell = ws.cell(row=row, column=2, value=label)
        label_cell.font = Font(bold=True)
        value_cell = ws.cell(row=row, column=3, value=value)
        if label.startswith("Percentage of Positive"):
            value_cell.fill = WIN_FILL if summary["win_rate"] >= 50 else LOSS_FILL
        label_cell.protection = Protection(locked=True)
        value_cell.protection = Protection(locked=True)
        row += 1

    row += 1
    for text, bold in (
        (f"Report Type: {report_type}", True),
        (f"Period: {period_label}", False),
        (f"Total Trades: {len(trades)}", False),
        (f"Generated: {generated_at.strftime('%b %d, %Y %H:%M')}", False),
    ):
        cell = ws.cell(row=row, column=1, value=text)
        cell.font = Font(bold=bold, size=12)
        cell.fill = INFO_FILL
        row += 1

    ws.protection.sheet = True
    ws.protection.formatCells = False
    ws.protection.formatColumns = False

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()
