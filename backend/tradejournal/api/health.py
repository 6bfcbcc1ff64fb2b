"""
Health check endpoint.
"""
import asyncio
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime, timezone
from tradejournal.core.database import get_db
from tradejournal.core.config import get_settings
from tradejournal.core.clients import get_email_client, get_llm_client
from tradejournal.services.email import EmailClient
from tradejournal.services.llm.client import LLMClient
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


async def _probe(name: str, func, timeout: float) -> dict:
    """Run a blocking probe in a thread with a hard timeout."""
    started = datetime.now(timezone.utc)
    try:
        await asyncio.wait_for(asyncio.to_thread(func), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"health_probe_timeout: service={name}, timeout={timeout}")
        return {"status": "error", "error": f"timed out after {timeout}s"}
    except Exception as e:
        logger.warning(f"health_probe_failed: service={name}, error={e}")
        return {"status": "error", "error": str(e)}
    elapsed_ms = int((datetime.now(timezone.utc) - started).total_seconds() * 1000)
    return {"status": "ok", "latency_ms": elapsed_ms}


@router.get("/health")
async def health(
    db: Session = Depends(get_db),
    email_client: EmailClient = Depends(get_email_client),
    llm_client: Optional[LLMClient] = Depends(get_llm_client),
    settings=Depends(get_settings),
):
    """Database probe plus optional LLM and SMTP probes."""
    timeout = settings.health_check_timeout_seconds
    services: dict = {}

    try:
        db.execute(text("SELECT 1"))
        services["database"] = {"status": "ok"}
    except Exception as e:
        logger.error(f"Health check database probe failed: {e}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "status": "unhealthy",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "services": {"database": {"status": "error", "error": "Database unavailable"}},
            },
        )

    if llm_client is not None:
        services["llm"] = await _probe("llm", lambda: llm_client.probe(timeout), timeout)
    else:
        services["llm"] = {"status": "not_configured"}

    if email_client.configured:
        services["smtp"] = await _probe("smtp", email_client.probe, timeout)
    else:
        services["smtp"] = {"status": "not_configured"}

    degraded = any(s["status"] == "error" for s in services.values())
    return {
        "status": "degraded" if degraded else "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": services,
    }
