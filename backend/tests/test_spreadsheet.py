"""Trade report workbook and summary figures."""

import io
from datetime import date, time

import openpyxl
import pytest

from tradejournal.models.trade import Trade, TradeStatus, TradeType
from tradejournal.services.reports.spreadsheet import (
    EXPORT_COLUMNS,
    build_trade_workbook,
    calculate_summary,
    summary_rows,
)


def trade(pips, profit_loss, duration=30, pair="EURUSD", **kwargs):
    return Trade(
        currency_pair=pair,
        trade_type=TradeType.LONG,
        status=TradeStatus.CLOSED,
        entry_price=1.1,
        exit_price=1.1 + pips / 10000,
        lot_size=1.0,
        pips=pips,
        profit_loss=profit_loss,
        currency="AUD",
        date=kwargs.pop("date", date(2025, 3, 4)),
        entry_time=time(9, 0),
        exit_time=time(9, 30),
        duration=duration,
        tags=kwargs.pop("tags", ["breakout"]),
        notes=kwargs.pop("notes", None),
    )


def load(content):
    return openpyxl.load_workbook(io.BytesIO(content))["Trade Report"]


def find_row(ws, label):
    for row in ws.iter_rows(min_col=2, max_col=3):
        if row[0].value == label:
            return row
    raise AssertionError(f"{label!r} not found")


class TestCalculateSummary:
    def test_counts_and_averages(self):
        summary = calculate_summary([trade(20, 50), trade(10, 25, duration=60), trade(-15, -40, duration=None)])
        assert summary == {
            "total_trades": 3,
            "positive_trades": 2,
            "negative_trades": 1,
            "win_rate": 66.7,
            "avg_positive_pips": 15.0,
            "avg_negative_pips": -15.0,
            "avg_duration": 45.0,
            "net_pips": 15.0,
        }

    def test_empty(self):
        summary = calculate_summary([])
        assert summary["total_trades"] == 0
        assert summary["win_rate"] == 0.0
        assert summary["net_pips"] == 0.0

    def test_summary_rows_are_labelled(self):
        rows = dict(summary_rows(calculate_summary([trade(20, 50)])))
        assert rows["Number of Trades"] == 1
        assert rows["Percentage of Positive (Win Rate)"] == "100.0%"
        assert rows["Average Time (Duration)"] == "30.0 m"


class TestBuildTradeWorkbook:
    def test_header_and_trade_rows(self):
        ws = load(build_trade_workbook([trade(20, 50), trade(-5, -12)], "Weekly", "Mar 03 - Mar 09, 2025"))
        assert [c.value for c in ws[1]] == [header for header, _ in EXPORT_COLUMNS]
        assert ws.cell(row=2, column=3).value == "EURUSD"
        assert ws.cell(row=2, column=14).value == "breakout"
        assert ws.cell(row=3, column=1).value == 2

    def test_pl_and_pips_coloured_by_sign(self):
        ws = load(build_trade_workbook([trade(20, 50), trade(-5, -12)], "Weekly", "label"))
        pips_col = [h for h, _ in EXPORT_COLUMNS].index("Net Pips") + 1
        pl_col = [h for h, _ in EXPORT_COLUMNS].index("P/L") + 1
        assert ws.cell(row=2, column=pl_col).font.color.rgb == "FF008000"
        assert ws.cell(row=3, column=pl_col).font.color.rgb == "FFFF0000"
        assert ws.cell(row=3, column=pips_col).font.color.rgb == "FFFF0000"

    @pytest.mark.parametrize("trades, fill", [
        ([trade(20, 50), trade(-5, -12)], "FFC6EFCE"),
        ([trade(20, 50), trade(-5, -12), trade(-1, -2)], "FFFFC7CE"),
    ])
    def test_win_rate_fill(self, trades, fill):
        ws = load(build_trade_workbook(trades, "Weekly", "label"))
        _, value = find_row(ws, "Percentage of Positive (Win Rate)")
        assert value.fill.fgColor.rgb == fill

    def test_sheet_protected_with_locked_summary_and_editable_trades(self):
        ws = load(build_trade_workbook([trade(20, 50)], "Monthly", "February 2025"))
        assert ws.protection.sheet is True
        assert ws.cell(row=2, column=3).protection.locked is False
        label, value = find_row(ws, "Net Pips")
        assert label.protection.locked is True
        assert value.value == 20

    def test_info_block(self):
        ws = load(build_trade_workbook([trade(20, 50)], "Monthly", "February 2025"))
        texts = [c.value for c in ws["A"] if isinstance(c.value, str)]
        assert "Report Type: Monthly" in texts
        assert "Period: February 2025" in texts
        assert "Total Trades: 1" in texts

    def test_jpy_prices_use_three_decimals(self):
        jpy = trade(20, 50, pair="USDJPY")
        jpy.entry_price = 151.23456
        ws = load(build_trade_workbook([jpy], "Export", "label"))
        assert ws.cell(row=2, column=8).value == 151.235
