"""
Periodic trade report endpoints.

`router` holds the per-period and test routes, `cron_router` the fan-out route
an external scheduler calls once a day.
"""
from fastapi import APIRouter, Depends, HTTPException, status
import logging
from sqlalchemy.orm import Session
from pydantic import BaseModel
from datetime import date
from tradejournal.core.database import get_db
from tradejournal.core.auth import get_current_user_dependency, require_cron_secret
from tradejournal.core.clients import get_email_client, get_today
from tradejournal.models.audit_log import AuditLog
from tradejournal.models.user import User
from tradejournal.services.email import EmailClient
from tradejournal.services.reports.composer import ReportDeliveryError, ReportRunResult, run_period_reports, send_user_report
from tradejournal.services.reports.periods import ReportPeriod, due_periods, is_due, previous_window

logger = logging.getLogger(__name__)

router = APIRouter()
cron_router = APIRouter()


class TestReportRequest(BaseModel):
    period: ReportPeriod = ReportPeriod.WEEKLY


@router.post("/test", response_model=dict)
def send_test_report(
    request: TestReportRequest,
    current_user: User = Depends(get_current_user_dependency),
    email_client: EmailClient = Depends(get_email_client),
    today: date = Depends(get_today),
    db: Session = Depends(get_db)
):
    """Send the caller their report for the chosen period, whatever the day."""
    window = previous_window(request.period, today)
    try:
        trade_count = send_user_report(db, email_client, current_user, window, today)
    except ReportDeliveryError as e:
        logger.warning(f"test_report_failed: user_id={current_user.id}, period={request.period.value}, reason={e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return {
        "success": True,
        "period": request.period.value,
        "window": window.label,
        "trades": trade_count,
    }


@router.post("/{period}", response_model=dict)
def run_reports(
    period: ReportPeriod,
    _: None = Depends(require_cron_secret),
    email_client: EmailClient = Depends(get_email_client),
    today: date = Depends(get_today),
    db: Session = Depends(get_db)
):
    """Send one period's reports. Does nothing on days the period is not due."""
    if not is_due(period, today):
        logger.info(f"{period.value}_reports_skipped: today={today}")
        return ReportRunResult(period=period, skipped=True).to_dict()
    return run_period_reports(db, email_client, period, today).to_dict()


@cron_router.post("/trade-reports", response_model=dict)
def trade_reports_cron(
    _: None = Depends(require_cron_secret),
    email_client: EmailClient = Depends(get_email_client),
    today: date = Depends(get_today),
    db: Session = Depends(get_db)
):
    """Run every period due today and record the run in the audit log."""
    periods = due_periods(today)
    results = {period.value: run_period_reports(db, email_client, period, today) for period in periods}

    details = {
        "date": today.isoformat(),
        "periods": {
            name: {"sent": r.success_count, "errors": r.error_count}
            for name, r in results.items()
        },
    }
    db.add(AuditLog(action="trade_reports_cron", entity_type="report", details=details))
    db.commit()

    logger.info(f"trade_reports_cron_done: date={today}, periods={[p.value for p in periods]}")
    return {
        "success": True,
        "date": today.isoformat(),
        "results": {name: r.to_dict() for name, r in results.items()},
        "sent": {name: r.success_count for name, r in results.items()},
    }
