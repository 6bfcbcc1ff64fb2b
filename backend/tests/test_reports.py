"""Scheduled and on-demand trade reports."""

import inspect
import io
from datetime import date, time

import openpyxl
import pytest

from tradejournal.api.reports import run_reports, send_test_report, trade_reports_cron
from tradejournal.models import AuditLog
from tradejournal.models.trade import Trade, TradeStatus, TradeType

from conftest import make_user

CRON_HEADERS = {"Authorization": "Bearer test-cron-secret"}
MONDAY = date(2025, 3, 10)


def add_trade(db, user, day, pips=20.0, profit_loss=40.0):
    db.add(Trade(
        user_id=user.id,
        currency_pair="EURUSD",
        trade_type=TradeType.LONG,
        status=TradeStatus.CLOSED,
        entry_price=1.08,
        exit_price=1.08 + pips / 10000,
        lot_size=1.0,
        pips=pips,
        profit_loss=profit_loss,
        date=day,
        entry_time=time(9, 0),
        exit_time=time(9, 45),
        duration=45,
        tags=["trend"],
    ))
    db.commit()


class TestCronAuth:
    @pytest.mark.parametrize("headers", [
        {},
        {"Authorization": "Bearer wrong"},
        {"Authorization": "test-cron-secret"},
    ])
    def test_rejected_without_matching_bearer(self, anonymous_client, headers):
        assert anonymous_client.post("/api/reports/weekly", headers=headers).status_code == 401
        assert anonymous_client.post("/api/cron/trade-reports", headers=headers).status_code == 401

    def test_fails_closed_without_secret(self, anonymous_client, app_overrides):
        from tradejournal.core.config import get_settings
        from conftest import FakeSettings

        class NoSecret(FakeSettings):
            cron_secret = None

        app_overrides.dependency_overrides[get_settings] = lambda: NoSecret()
        assert anonymous_client.post("/api/reports/weekly", headers=CRON_HEADERS).status_code == 401


class TestNotDue:
    def test_weekly_skipped_on_wednesday(self, anonymous_client, db_session, email_client):
        make_user(db_session, "weekly@example.com", "weekly", weekly_reports=True)
        response = anonymous_client.post("/api/reports/weekly", headers=CRON_HEADERS)
        assert response.status_code == 200
        body = response.json()
        assert body["skipped"] is True
        assert body["successCount"] == 0
        assert email_client.sent == []

    def test_cron_with_nothing_due(self, anonymous_client, db_session, email_client):
        body = anonymous_client.post("/api/cron/trade-reports", headers=CRON_HEADERS).json()
        assert body == {"success": True, "date": "2025-03-12", "results": {}, "sent": {}}
        assert db_session.query(AuditLog).filter_by(action="trade_reports_cron").count() == 1


class TestMondayRun:
    @pytest.fixture
    def today(self):
        return MONDAY

    @pytest.fixture
    def recipients(self, db_session):
        active = make_user(db_session, "active@example.com", "active", weekly_reports=True)
        quiet = make_user(db_session, "quiet@example.com", "quiet", weekly_reports=True)
        make_user(db_session, "optout@example.com", "optout", weekly_reports=False, monthly_reports=True)
        add_trade(db_session, active, date(2025, 3, 3))
        add_trade(db_session, active, date(2025, 3, 9), pips=-10.0, profit_loss=-15.0)
        add_trade(db_session, active, date(2025, 3, 10))
        return active, quiet

    def test_sends_to_opted_in_users(self, anonymous_client, email_client, recipients):
        body = anonymous_client.post("/api/reports/weekly", headers=CRON_HEADERS).json()
        assert body["skipped"] is False
        assert body["processed"] == 2
        assert body["successCount"] == 2
        assert sorted(m["to"] for m in email_client.sent) == ["active@example.com", "quiet@example.com"]

    def test_workbook_only_when_trades_exist(self, anonymous_client, email_client, recipients):
        anonymous_client.post("/api/reports/weekly", headers=CRON_HEADERS)
        by_recipient = {m["to"]: m for m in email_client.sent}

        quiet = by_recipient["quiet@example.com"]
        assert quiet["attachments"] == []
        assert quiet["subject"] == "Your Weekly Trade Report - Mar 03 - Mar 09, 2025"

        active = by_recipient["active@example.com"]
        [attachment] = active["attachments"]
        assert attachment.filename.startswith("trade_report_weekly_")
        assert attachment.filename.endswith("_active_2025-03-10.xlsx")

        ws = openpyxl.load_workbook(io.BytesIO(attachment.content))["Trade Report"]
        assert [ws.cell(row=row, column=1).value for row in (2, 3, 4)] == [1, 2, None]
        assert "Total Trades: 2" in [c.value for c in ws["A"]]
        assert "Percentage of Positive (Win Rate)" in active["html"]

    def test_one_failure_does_not_stop_the_batch(self, anonymous_client, email_client, recipients):
        email_client.fail_for.add("active@example.com")
        body = anonymous_client.post("/api/reports/weekly", headers=CRON_HEADERS).json()
        assert body["successCount"] == 1
        assert body["errorCount"] == 1
        assert body["errors"] == [f"User {recipients[0].id}: Failed to send email"]

    def test_cron_runs_due_periods_and_audits(self, anonymous_client, email_client, db_session, recipients):
        body = anonymous_client.post("/api/cron/trade-reports", headers=CRON_HEADERS).json()
        assert body["date"] == "2025-03-10"
        assert list(body["results"]) == ["weekly"]
        assert body["sent"] == {"weekly": 2}

        log = db_session.query(AuditLog).filter_by(action="trade_reports_cron").one()
        assert log.details == {"date": "2025-03-10", "periods": {"weekly": {"sent": 2, "errors": 0}}}

    def test_monthly_not_due_on_the_tenth(self, anonymous_client, email_client, recipients):
        body = anonymous_client.post("/api/reports/monthly", headers=CRON_HEADERS).json()
        assert body["skipped"] is True
        assert email_client.sent == []


class TestTestReport:
    def test_sends_to_caller(self, client, user, db_session, email_client):
        add_trade(db_session, user, date(2025, 3, 5))
        response = client.post("/api/reports/test", json={"period": "weekly"})
        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "period": "weekly",
            "window": "Mar 03 - Mar 09, 2025",
            "trades": 1,
        }
        [message] = email_client.sent
        assert message["to"] == user.email
        assert len(message["attachments"]) == 1

    def test_ignores_opt_in_and_due_date(self, client, email_client):
        response = client.post("/api/reports/test", json={"period": "yearly"})
        assert response.json()["window"] == "2024"
        assert response.json()["trades"] == 0
        assert len(email_client.sent) == 1

    def test_delivery_failure(self, client, user, email_client):
        email_client.fail_for.add(user.email)
        response = client.post("/api/reports/test", json={})
        assert response.status_code == 502
        assert response.json()["detail"] == "Failed to send email"

    def test_requires_session(self, anonymous_client):
        assert anonymous_client.post("/api/reports/test", json={}).status_code == 401


@pytest.mark.parametrize("handler", [send_test_report, run_reports, trade_reports_cron])
def test_smtp_routes_run_in_threadpool(handler):
    assert not inspect.iscoroutinefunction(handler)
