"""Report period due dates and windows."""

from datetime import date, datetime, time

import pytest

from tradejournal.services.reports.periods import (
    ReportPeriod,
    due_periods,
    is_due,
    previous_window,
    report_filename,
)


class TestIsDue:
    def test_weekly_only_on_mondays(self):
        assert is_due(ReportPeriod.WEEKLY, date(2025, 3, 10))
        for day in range(11, 17):
            assert not is_due(ReportPeriod.WEEKLY, date(2025, 3, day))

    def test_monthly_on_the_first(self):
        assert is_due(ReportPeriod.MONTHLY, date(2025, 6, 1))
        assert not is_due(ReportPeriod.MONTHLY, date(2025, 6, 2))

    def test_quarterly_on_quarter_starts(self):
        assert is_due(ReportPeriod.QUARTERLY, date(2025, 7, 1))
        assert not is_due(ReportPeriod.QUARTERLY, date(2025, 8, 1))

    def test_new_year_triggers_everything_but_weekly_on_a_wednesday(self):
        assert due_periods(date(2025, 1, 1)) == [
            ReportPeriod.MONTHLY,
            ReportPeriod.QUARTERLY,
            ReportPeriod.YEARLY,
        ]

    def test_ordinary_day_has_nothing_due(self):
        assert due_periods(date(2025, 3, 12)) == []


class TestPreviousWindow:
    @pytest.mark.parametrize("today", [date(2025, 3, 10), date(2025, 3, 12), date(2025, 3, 16)])
    def test_weekly_is_previous_monday_to_sunday(self, today):
        window = previous_window(ReportPeriod.WEEKLY, today)
        assert window.start_date == date(2025, 3, 3)
        assert window.end_date == date(2025, 3, 9)
        assert window.start == datetime(2025, 3, 3, 0, 0)
        assert window.end == datetime.combine(date(2025, 3, 9), time.max)
        assert window.label == "Mar 03 - Mar 09, 2025"

    def test_monthly_handles_short_months(self):
        window = previous_window(ReportPeriod.MONTHLY, date(2025, 3, 1))
        assert (window.start_date, window.end_date) == (date(2025, 2, 1), date(2025, 2, 28))
        assert window.label == "February 2025"

    def test_monthly_across_year_boundary(self):
        window = previous_window(ReportPeriod.MONTHLY, date(2025, 1, 1))
        assert (window.start_date, window.end_date) == (date(2024, 12, 1), date(2024, 12, 31))

    def test_quarterly(self):
        window = previous_window(ReportPeriod.QUARTERLY, date(2025, 4, 1))
        assert (window.start_date, window.end_date) == (date(2025, 1, 1), date(2025, 3, 31))
        assert window.label == "Q1 2025"

    def test_quarterly_across_year_boundary(self):
        window = previous_window(ReportPeriod.QUARTERLY, date(2025, 1, 1))
        assert (window.start_date, window.end_date) == (date(2024, 10, 1), date(2024, 12, 31))
        assert window.label == "Q4 2024"

    def test_yearly(self):
        window = previous_window(ReportPeriod.YEARLY, date(2025, 1, 1))
        assert (window.start_date, window.end_date) == (date(2024, 1, 1), date(2024, 12, 31))
        assert window.label == "2024"


class TestReportFilename:
    def test_filename_is_filesystem_safe(self):
        window = previous_window(ReportPeriod.WEEKLY, date(2025, 3, 12))
        name = report_filename(window, "jane doe/x", date(2025, 3, 12))
        assert name.startswith("trade_report_weekly_Mar_03")
        assert name.endswith("_jane_doe_x_2025-03-12.xlsx")
        assert " " not in name and "/" not in name and "," not in name
