"""
Report periods: when each report is due and which window it covers.
"""
import enum
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import List


class ReportPeriod(str, enum.Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


QUARTER_START_MONTHS = (1, 4, 7, 10)


@dataclass(frozen=True)
class ReportWindow:
    period: ReportPeriod
    start_date: date
    end_date: date  # inclusive

    @property
    def start(self) -> datetime:
        return datetime.combine(self.start_date, time.min)

    @property
    def end(self) -> datetime:
        return datetime.combine(self.end_date, time.max)

    @property
    def label(self) -> str:
        return period_label(self)


def is_due(period: ReportPeriod, today: date) -> bool:
    """Weekly on Mondays, monthly on the 1st, quarterly on the 1st of Jan/Apr/Jul/Oct, yearly on Jan 1."""
    period = ReportPeriod(period)
    if period == ReportPeriod.WEEKLY:
        return today.weekday() == 0
    if period == ReportPeriod.MONTHLY:
        return today.day == 1
    if period == ReportPeriod.QUARTERLY:
        return today.day == 1 and today.month in QUARTER_START_MONTHS
    return today.day == 1 and today.month == 1


def due_periods(today: date) -> List[ReportPeriod]:
    return [period for period in ReportPeriod if is_due(period, today)]


def _first_of_previous_month(today: date) -> date:
    first_this_month = today.replace(day=1)
    return (first_this_month - timedelta(days=1)).replace(day=1)


def previous_window(period: ReportPeriod, today: date) -> ReportWindow:
    """The last complete period before `today`."""
    period = ReportPeriod(period)

    if period == ReportPeriod.WEEKLY:
        start = today - timedelta(days=today.weekday() + 7)
        return ReportWindow(period, start, start + timedelta(days=6))

    if period == ReportPeriod.MONTHLY:
        start = _first_of_previous_month(today)
        return ReportWindow(period, start, today.replace(day=1) - timedelta(days=1))

    if period == ReportPeriod.QUARTERLY:
        current_quarter = (today.month - 1) // 3
        if current_quarter == 0:
            year, quarter = today.year - 1, 3
        else:
            year, quarter = today.year, current_quarter - 1
        start = date(year, quarter * 3 + 1, 1)
        next_quarter_start = date(year + 1, 1, 1) if quarter == 3 else date(year, quarter * 3 + 4, 1)
        return ReportWindow(period, start, next_quarter_start - timedelta(days=1))

    return ReportWindow(period, date(today.year - 1, 1, 1), date(today.year - 1, 12, 31))


def period_label(window: ReportWindow) -> str:
    """'Mar 03 - Mar 09, 2025', 'March 2025', 'Q1 2025' or '2025'."""
    start = window.start_date
    if window.period == ReportPeriod.WEEKLY:
        return f"{start.strftime('%b %d')} - {window.end_date.strftime('%b %d, %Y')}"
    if window.period == ReportPeriod.MONTHLY:
        return start.strftime('%B %Y')
    if window.period == ReportPeriod.QUARTERLY:
        return f"Q{(start.month - 1) // 3 + 1} {start.year}"
    return str(start.year)


def report_filename(window: ReportWindow, username: str, generated_on: date) -> str:
    safe_label = re.sub(r"[^a-zA-Z0-9]", "_", window.label)
    safe_user = re.sub(r"[^a-zA-Z0-9_.-]", "_", username)
    return f"trade_report_{window.period.value}_{safe_label}_{safe_user}_{generated_on.isoformat()}.xlsx"
