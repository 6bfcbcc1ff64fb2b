"""Trade journal endpoints and derived fields."""

import inspect
import io
from datetime import time

import openpyxl
import pytest

from tradejournal.api.trades import ai_trade_summary
from tradejournal.core.clients import get_llm_client
from tradejournal.main import app
from tradejournal.models.trade import Trade, TradeType
from tradejournal.services.email import XLSX_MIME_TYPE
from tradejournal.services.trades import NO_TRADES_SUMMARY, calculate_duration, calculate_pips

from conftest import FakeLLMClient


def trade_body(**overrides):
    body = {
        "currency_pair": "EUR/USD",
        "trade_type": "LONG",
        "entry_price": 1.1000,
        "exit_price": 1.1025,
        "lot_size": 1.0,
        "profit_loss": 50.0,
        "date": "2025-03-04",
        "entry_time": "09:00:00",
        "exit_time": "10:30:00",
        "tags": ["breakout", "london"],
    }
    body.update(overrides)
    return body


def create_trade(client, **overrides):
    response = client.post("/api/trades", json=trade_body(**overrides))
    assert response.status_code == 201, response.text
    return response.json()


class TestDerivedFields:
    def test_long_pips(self):
        assert calculate_pips("EURUSD", TradeType.LONG, 1.1000, 1.1025) == 25.0

    def test_short_jpy_pips(self):
        assert calculate_pips("USDJPY", TradeType.SHORT, 151.50, 151.20) == 30.0

    def test_losing_short(self):
        assert calculate_pips("GBPUSD", "SHORT", 1.2500, 1.2520) == -20.0

    def test_open_trade_has_no_pips(self):
        assert calculate_pips("EURUSD", TradeType.LONG, 1.1, None) is None

    def test_duration(self):
        assert calculate_duration(time(9, 0), time(10, 30)) == 90

    def test_duration_across_midnight(self):
        assert calculate_duration(time(23, 30), time(0, 15)) == 45

    def test_duration_needs_both_times(self):
        assert calculate_duration(time(9, 0), None) is None


class TestTradeCrud:
    def test_create_derives_pips_and_duration(self, client):
        trade = create_trade(client)
        assert trade["currency_pair"] == "EURUSD"
        assert trade["pips"] == 25.0
        assert trade["duration"] == 90
        assert trade["status"] == "CLOSED"
        assert trade["currency"] == "AUD"

    def test_explicit_values_are_kept(self, client):
        trade = create_trade(client, pips=24.0, duration=95)
        assert trade["pips"] == 24.0
        assert trade["duration"] == 95

    def test_update_rederives_pips(self, client):
        trade = create_trade(client)
        response = client.put(f"/api/trades/{trade['id']}", json={"exit_price": 1.0990})
        assert response.status_code == 200
        assert response.json()["pips"] == -10.0
        assert response.json()["duration"] == 90

    @pytest.mark.parametrize("field", [
        "entry_price", "lot_size", "trade_type", "currency_pair", "date", "currency", "status",
    ])
    def test_null_for_required_field_is_400(self, client, db_session, field):
        trade = create_trade(client)
        response = client.put(f"/api/trades/{trade['id']}", json={field: None})
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid request"
        db_session.expire_all()
        assert db_session.get(Trade, trade["id"]).entry_price == 1.1000

    def test_null_clears_optional_field(self, client):
        trade = create_trade(client, notes="first pullback")
        response = client.put(f"/api/trades/{trade['id']}", json={"notes": None, "exit_price": None})
        assert response.status_code == 200
        assert response.json()["notes"] is None
        assert response.json()["pips"] is None

    def test_invalid_tag_rejected(self, client):
        response = client.post("/api/trades", json=trade_body(tags=["scalp!"]))
        assert response.status_code == 400

    def test_list_filters(self, client):
        create_trade(client, date="2025-03-03")
        create_trade(client, currency_pair="GBPUSD", date="2025-03-05")
        create_trade(client, date="2025-03-10")

        in_range = client.get("/api/trades", params={"start_date": "2025-03-03", "end_date": "2025-03-09"}).json()
        assert [t["date"] for t in in_range] == ["2025-03-05", "2025-03-03"]

        ascending = client.get("/api/trades", params={"order": "asc", "currency_pair": "EURUSD"}).json()
        assert [t["date"] for t in ascending] == ["2025-03-03", "2025-03-10"]

    def test_delete(self, client, db_session):
        trade = create_trade(client)
        assert client.delete(f"/api/trades/{trade['id']}").status_code == 200
        assert db_session.query(Trade).count() == 0


class TestOwnership:
    def test_other_users_trade_is_not_found(self, client, other_client):
        trade = create_trade(client)
        assert other_client.get(f"/api/trades/{trade['id']}").status_code == 404
        assert other_client.put(f"/api/trades/{trade['id']}", json={"notes": "mine now"}).status_code == 404
        assert other_client.delete(f"/api/trades/{trade['id']}").status_code == 404
        assert other_client.get("/api/trades").json() == []

    def test_requires_session(self, anonymous_client):
        assert anonymous_client.get("/api/trades").status_code == 401


class TestStats:
    def test_statistics(self, client):
        create_trade(client, profit_loss=50.0)
        create_trade(client, currency_pair="GBPUSD", entry_price=1.25, exit_price=1.2480, profit_loss=-20.0)
        create_trade(client, profit_loss=30.0)

        stats = client.get("/api/trades/stats").json()
        assert stats["total_trades"] == 3
        assert stats["winning_trades"] == 2
        assert stats["losing_trades"] == 1
        assert stats["win_rate"] == 66.7
        assert stats["total_profit_loss"] == 60.0
        assert stats["average_profit_loss"] == 20.0
        assert stats["net_pips"] == 30.0
        assert stats["best_pair"] == "EURUSD"
        assert stats["worst_pair"] == "GBPUSD"

    def test_no_trades(self, client):
        stats = client.get("/api/trades/stats").json()
        assert stats["total_trades"] == 0
        assert stats["win_rate"] == 0.0
        assert stats["best_pair"] is None


class TestTags:
    def test_rename_merges_duplicates(self, client, other_client):
        create_trade(client, tags=["breakout", "london"])
        create_trade(client, tags=["news"])
        theirs = create_trade(other_client, tags=["breakout"])

        response = client.patch("/api/trades/tags", json={"old_tag": "breakout", "new_tag": "london"})
        assert response.json() == {"success": True, "updated": 1}
        assert sorted(tuple(t["tags"]) for t in client.get("/api/trades").json()) == [("london",), ("news",)]
        assert other_client.get(f"/api/trades/{theirs['id']}").json()["tags"] == ["breakout"]

    def test_remove(self, client):
        create_trade(client, tags=["breakout", "london"])
        create_trade(client, tags=["london"])
        response = client.delete("/api/trades/tags", params={"tag": "london"})
        assert response.json()["updated"] == 2
        assert sorted(tuple(t["tags"]) for t in client.get("/api/trades").json()) == [(), ("breakout",)]


class TestExport:
    def test_workbook_download(self, client):
        create_trade(client)
        create_trade(client, currency_pair="GBPUSD")

        response = client.get("/api/trades/export")
        assert response.status_code == 200
        assert response.headers["content-type"] == XLSX_MIME_TYPE
        assert response.headers["content-disposition"].startswith('attachment; filename="trades_trader_')

        ws = openpyxl.load_workbook(io.BytesIO(response.content))["Trade Report"]
        pairs = {ws.cell(row=row, column=3).value for row in (2, 3)}
        assert pairs == {"EURUSD", "GBPUSD"}


class TestAISummary:
    def test_no_trades(self, client):
        assert client.post("/api/trades/ai-summary", json={}).json() == {"summary": NO_TRADES_SUMMARY}

    def test_unconfigured(self, client):
        create_trade(client)
        assert client.post("/api/trades/ai-summary", json={}).status_code == 503

    @pytest.mark.parametrize("mode, system_word", [("tags", "analyst"), ("strategy", "coach")])
    def test_modes(self, client, mode, system_word):
        llm = FakeLLMClient(content="  Breakouts outperform.  ")
        app.dependency_overrides[get_llm_client] = lambda: llm
        create_trade(client)

        body = client.post("/api/trades/ai-summary", json={"mode": mode}).json()
        assert body == {"summary": "Breakouts outperform.", "mode": mode}
        assert system_word in llm.calls[0]["system"]
        assert "EURUSD" in llm.calls[0]["user"]

    def test_provider_failure(self, client):
        app.dependency_overrides[get_llm_client] = lambda: FakeLLMClient(error="rate limited")
        create_trade(client)
        assert client.post("/api/trades/ai-summary", json={}).status_code == 502

    def test_runs_in_threadpool(self):
        assert not inspect.iscoroutinefunction(ai_trade_summary)
