"""
Periodic trade report fan-out: one email per opted-in user.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional
from sqlalchemy.orm import Session
from tradejournal.models.trade import Trade
from tradejournal.models.user import User
from tradejournal.models.user_settings import UserSettings, REPORT_FLAG_COLUMNS
from tradejournal.services.email import EmailAttachment, EmailClient, render_trade_report_email
from tradejournal.services.reports.periods import ReportPeriod, ReportWindow, previous_window, report_filename
from tradejournal.services.reports.spreadsheet import build_trade_workbook, calculate_summary, summary_rows
import logging

logger = logging.getLogger(__name__)


@dataclass
class ReportRunResult:
    period: ReportPeriod
    processed: int = 0
    success_count: int = 0
    errors: List[str] = field(default_factory=list)
    skipped: bool = False

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def to_dict(self) -> dict:
        return {
            "success": True,
            "period": self.period.value,
            "skipped": self.skipped,
            "processed": self.processed,
            "successCount": self.success_count,
            "errorCount": self.error_count,
            "errors": self.errors,
        }


class ReportDeliveryError(Exception):
    """One user's report could not be produced or sent."""


def report_recipients(db: Session, period: ReportPeriod) -> List[User]:
    flag = getattr(UserSettings, REPORT_FLAG_COLUMNS[ReportPeriod(period).value])
    return (
        db.query(User)
        .join(UserSettings, UserSettings.user_id == User.id)
        .filter(flag.is_(True), User.is_active.is_(True))
        .order_by(User.id)
        .all()
    )


def trades_in_window(db: Session, user_id: int, window: ReportWindow) -> List[Trade]:
    return (
        db.query(Trade)
        .filter(
            Trade.user_id == user_id,
            Trade.date >= window.start_date,
            Trade.date <= window.end_date,
        )
        .order_by(Trade.date.desc(), Trade.id.desc())
        .all()
    )


def send_user_report(
    db: Session,
    email_client: EmailClient,
    user: User,
    window: ReportWindow,
    today: date,
) -> int:
    """
    Build and send one user's report. Returns the number of trades reported.

    The spreadsheet is attached only when the user has trades in the window.
    Raises ReportDeliveryError with a user-facing reason.
    """
    if not user.email:
        raise ReportDeliveryError("Email not found")

    try:
        trades = trades_in_window(db, user.id, window)
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to fetch trades for user {user.id}: {e}", exc_info=True)
        raise ReportDeliveryError("Failed to fetch trades") from e

    summary = dict(summary_rows(calculate_summary(trades))) if trades else None
    subject, html_body, text_body = render_trade_report_email(
        user.display_name, window.period.value, window.label, summary
    )

    attachments: Optional[List[EmailAttachment]] = None
    if trades:
        try:
            workbook = build_trade_workbook(trades, window.period.value.capitalize(), window.label)
        except Exception as e:
            logger.error(f"Failed to build report workbook for user {user.id}: {e}", exc_info=True)
            raise ReportDeliveryError("Failed to generate spreadsheet") from e
        attachments = [EmailAttachment(filename=report_filename(window, user.username, today), content=workbook)]

    if not email_client.send(user.email, subject, html_body, text_body, attachments=attachments):
        raise ReportDeliveryError("Failed to send email")

    return len(trades)


def run_period_reports(
    db: Session,
    email_client: EmailClient,
    period: ReportPeriod,
    today: date,
) -> ReportRunResult:
    """Send the period's report to every opted-in user; one failure never stops the batch."""
    period = ReportPeriod(period)
    window = previous_window(period, today)
    result = ReportRunResult(period=period)

    for user in report_recipients(db, period):
        result.processed += 1
        try:
            trade_count = send_user_report(db, email_client, user, window, today)
        except ReportDeliveryError as e:
            result.errors.append(f"User {user.id}: {e}")
            logger.warning(f"{period.value}_report_failed: user_id={user.id}, reason={e}")
            continue
        result.success_count += 1
        logger.info(f"{period.value}_report_sent: user_id={user.id}, trades={trade_count}")

    logger.info(
        f"{period.value}_reports_done: window={window.start_date}..{window.end_date}, processed={result.processed}, "
        f"sent={result.success_count}, errors={result.error_count}"
    )
    return result
