"""
Process-wide external clients and their FastAPI dependencies.

Clients are built once at startup and kept on `app.state`; handlers get them
through the dependencies below so tests can swap them via
`app.dependency_overrides`.
"""
from datetime import date, datetime, timezone
from typing import Optional
from fastapi import FastAPI, Request
from tradejournal.core.config import MARKET_DATA_ENABLED
from tradejournal.services.email import EmailClient
from tradejournal.services.llm.client import LLMClient, build_llm_client
from tradejournal.services.data.market import MarketDataService
import logging

logger = logging.getLogger(__name__)


def init_clients(app: FastAPI) -> None:
    """Attach email, LLM and market data clients to the application."""
    app.state.email_client = EmailClient()
    app.state.llm_client = build_llm_client()
    app.state.market_data_service = MarketDataService(enabled=MARKET_DATA_ENABLED)
    logger.info(
        f"clients_initialized: smtp={'on' if app.state.email_client.configured else 'off'}, "
        f"llm={'on' if app.state.llm_client else 'off'}, market_data={'on' if MARKET_DATA_ENABLED else 'off'}"
    )


def get_email_client(request: Request) -> EmailClient:
    return request.app.state.email_client


def get_llm_client(request: Request) -> Optional[LLMClient]:
    return request.app.state.llm_client


def get_market_data_service(request: Request) -> MarketDataService:
    return request.app.state.market_data_service


def get_today() -> date:
    """Current UTC date. Overridden in tests to pin report periods."""
    return datetime.now(timezone.utc).date()
